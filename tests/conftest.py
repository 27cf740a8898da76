"""Shared fixtures for the doppler-secrets-action test suite."""
import io
from unittest import mock

import pytest

from doppler_action.secrets.domains.config_loader import ConfigurationError
from doppler_action.secrets.domains.models import ParseRequestSpec, RunContext
from doppler_action.secrets.domains.runner import GitHubActionsRunner


class RecordingRunner:
    """In-memory stand-in for the GitHub Actions runner."""

    def __init__(self, inputs=None, id_token="runner-id-token"):
        self.inputs = inputs or {}
        self.id_token = id_token
        self.outputs = {}
        self.output_order = []
        self.masked_values = []
        self.exported = {}
        self.failed_messages = []

    def get_input(self, name, required=False):
        value = str(self.inputs.get(name, "")).strip()
        if required and not value:
            raise ConfigurationError(f"Input required and not supplied: {name}")
        return value

    def set_output(self, name, value):
        self.outputs[name] = value
        self.output_order.append(name)

    def set_secret(self, value):
        if value:
            self.masked_values.append(value)

    def export_variable(self, name, value):
        self.exported[name] = value

    def set_failed(self, message):
        self.failed_messages.append(message)

    def get_id_token(self, audience=None):
        return self.id_token


def read_file_command(path):
    """Parse a GITHUB_OUTPUT / GITHUB_ENV file written with heredoc delimiters."""
    entries = {}
    lines = path.read_text(encoding="utf-8").split("\n")
    i = 0
    while i < len(lines):
        line = lines[i]
        if "<<" not in line:
            i += 1
            continue
        name, delimiter = line.split("<<", 1)
        i += 1
        value_lines = []
        while lines[i] != delimiter:
            value_lines.append(lines[i])
            i += 1
        entries[name] = "\n".join(value_lines)
        i += 1
    return entries


@pytest.fixture
def recording_runner():
    """Runner that records outputs, masks and exports in memory."""
    return RecordingRunner()


@pytest.fixture
def make_context(recording_runner):
    """Factory for a RunContext bound to the recording runner."""
    def _make(secrets_to_parse=None, key_prefix="", auto_detect=False, inject_env=False):
        spec = ParseRequestSpec(
            secrets_to_parse=tuple(secrets_to_parse or ()),
            key_prefix=key_prefix,
            auto_detect=auto_detect,
        )
        return RunContext(runner=recording_runner, parse_spec=spec, inject_env=inject_env)
    return _make


@pytest.fixture
def runner_env(tmp_path):
    """Environment mapping with empty GITHUB_OUTPUT and GITHUB_ENV files."""
    output_file = tmp_path / "github_output"
    env_file = tmp_path / "github_env"
    output_file.write_text("")
    env_file.write_text("")
    return {
        "GITHUB_OUTPUT": str(output_file),
        "GITHUB_ENV": str(env_file),
    }


@pytest.fixture
def actions_runner(runner_env):
    """Real runner writing file commands under tmp_path and commands to a buffer."""
    return GitHubActionsRunner(environ=runner_env, stream=io.StringIO())


@pytest.fixture
def mock_response():
    """Factory for a fake requests.Response."""
    def _make(status_code=200, payload=None, reason="OK", url="https://api.doppler.com/v3/configs/config/secrets"):
        response = mock.Mock()
        response.status_code = status_code
        response.reason = reason
        response.url = url
        if isinstance(payload, Exception):
            response.json.side_effect = payload
        else:
            response.json.return_value = payload
        return response
    return _make
