"""GitHub Actions runner primitives: inputs, outputs, masking and env exports.

The runner reads inputs from INPUT_* environment variables and talks back
through workflow commands on stdout (::add-mask::, ::error::, ...) and the
GITHUB_OUTPUT / GITHUB_ENV file commands.
"""
import logging
import os
import sys
import uuid
from typing import List, MutableMapping, Optional, TextIO
from urllib.parse import quote

import requests

from .config_loader import ConfigurationError, input_env_name

logger = logging.getLogger(__name__)


class RunnerError(Exception):
    """The runner environment cannot satisfy a request."""
    pass


def escape_data(value: str) -> str:
    """Escape a workflow command message."""
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def escape_property(value: str) -> str:
    """Escape a workflow command property value."""
    return escape_data(value).replace(":", "%3A").replace(",", "%2C")


def key_value_message(name: str, value: str) -> str:
    """
    Format a file command entry using a random heredoc delimiter.

    Raises:
        ValueError: If name or value contains the delimiter
    """
    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    if delimiter in name:
        raise ValueError(f"Unexpected input: name should not contain the delimiter \"{delimiter}\"")
    if delimiter in value:
        raise ValueError(f"Unexpected input: value should not contain the delimiter \"{delimiter}\"")
    return f"{name}<<{delimiter}\n{value}\n{delimiter}"


class WorkflowCommandHandler(logging.StreamHandler):
    """Logging handler that renders records as workflow commands."""

    def __init__(self, stream: Optional[TextIO] = None):
        super().__init__(stream or sys.stdout)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno >= logging.ERROR:
            return f"::error::{escape_data(message)}"
        if record.levelno >= logging.WARNING:
            return f"::warning::{escape_data(message)}"
        if record.levelno < logging.INFO:
            return f"::debug::{escape_data(message)}"
        return message


class GitHubActionsRunner:
    """The subset of the GitHub Actions toolkit the action needs."""

    def __init__(self, environ: Optional[MutableMapping[str, str]] = None, stream: Optional[TextIO] = None):
        self.environ = os.environ if environ is None else environ
        self.stream = stream or sys.stdout
        self.masked_values: List[str] = []
        self.failed = False

    def _issue(self, command: str, message: str = "", **properties: str) -> None:
        props = ",".join(f"{k}={escape_property(v)}" for k, v in properties.items())
        head = f"::{command} {props}" if props else f"::{command}"
        self.stream.write(f"{head}::{escape_data(message)}\n")
        self.stream.flush()

    def _issue_file_command(self, env_var: str, message: str) -> bool:
        path = self.environ.get(env_var)
        if not path:
            return False
        if not os.path.exists(path):
            raise RunnerError(f"Missing file at path: {path}")
        with open(path, "a", encoding="utf-8") as handle:
            handle.write(f"{message}\n")
        return True

    def get_input(self, name: str, required: bool = False) -> str:
        """
        Read an action input.

        Raises:
            ConfigurationError: If required and the input is empty
        """
        value = self.environ.get(input_env_name(name), "").strip()
        if required and not value:
            raise ConfigurationError(f"Input required and not supplied: {name}")
        return value

    def set_output(self, name: str, value: str) -> None:
        if not self._issue_file_command("GITHUB_OUTPUT", key_value_message(name, value)):
            self._issue("set-output", value, name=name)

    def set_secret(self, value: str) -> None:
        """Register a value with the runner's log masking."""
        if not value:
            return
        self.masked_values.append(value)
        self._issue("add-mask", value)

    def export_variable(self, name: str, value: str) -> None:
        self.environ[name] = value
        if not self._issue_file_command("GITHUB_ENV", key_value_message(name, value)):
            self._issue("set-env", value, name=name)

    def set_failed(self, message: str) -> None:
        self.failed = True
        self._issue("error", message)

    def get_id_token(self, audience: Optional[str] = None, timeout: int = 30) -> str:
        """
        Request an OIDC ID token for the workflow run.

        Requires the job to have 'id-token: write' permission.

        Raises:
            RunnerError: If the request variables are missing or the request fails
        """
        request_url = self.environ.get("ACTIONS_ID_TOKEN_REQUEST_URL")
        request_token = self.environ.get("ACTIONS_ID_TOKEN_REQUEST_TOKEN")
        if not request_url or not request_token:
            raise RunnerError(
                "Unable to get ACTIONS_ID_TOKEN_REQUEST_URL or ACTIONS_ID_TOKEN_REQUEST_TOKEN env variable. "
                "Make sure the job has 'id-token: write' permission."
            )

        if audience:
            request_url = f"{request_url}&audience={quote(audience, safe='')}"

        try:
            response = requests.get(
                request_url,
                headers={"Authorization": f"Bearer {request_token}", "Accept": "application/json"},
                timeout=timeout,
            )
            response.raise_for_status()
            id_token = response.json().get("value")
        except (requests.RequestException, ValueError) as e:
            raise RunnerError(f"Failed to get ID Token: {e}") from e

        if not id_token:
            raise RunnerError("Response JSON body does not have an ID token value")
        logger.debug("Obtained OIDC ID token from the runner")
        return id_token
