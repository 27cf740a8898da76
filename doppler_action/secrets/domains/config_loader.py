"""Configuration loader for the Doppler secrets action."""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, MutableMapping, Optional, Tuple
import yaml

logger = logging.getLogger(__name__)

DEFAULT_API_DOMAIN = "api.doppler.com"
AUTH_METHODS = ("oidc", "token")

SERVICE_ACCOUNT_PREFIXES = ("dp.sa.", "dp.said.")
PERSONAL_PREFIX = "dp.pt."

# Local development: populate inputs from DOPPLER_* variables
DEV_MODE_VAR = "DOPPLER_ACTION_ENV"


class ConfigurationError(Exception):
    """Fatal configuration error, raised before any secret is processed."""
    pass


def input_env_name(name: str) -> str:
    """Environment variable the runner uses to deliver an input."""
    return f"INPUT_{name.replace(' ', '_').upper()}"


@dataclass(frozen=True)
class ActionInputs:
    """Resolved action inputs."""
    auth_method: str
    api_domain: str = DEFAULT_API_DOMAIN
    identity_id: str = ""
    token: str = ""
    project: str = ""
    config: str = ""
    parse_json_secrets: str = ""
    json_key_prefix: str = ""
    auto_detect_json: str = ""
    inject_env_vars: str = ""

    @property
    def inject_env(self) -> bool:
        return self.inject_env_vars == "true"

    @classmethod
    def from_runner(cls, runner) -> "ActionInputs":
        """
        Read and validate every recognized input from the runner.

        The auth method is validated first, then the credential input it
        requires. Project/config scope is validated separately by
        resolve_scope once the final token is known.

        Args:
            runner: Object exposing get_input(name, required=False)

        Returns:
            ActionInputs

        Raises:
            ConfigurationError: Unsupported auth method or missing required input
        """
        auth_method = resolve_auth_method(runner.get_input("auth-method"))
        identity_id = ""
        token = ""
        if auth_method == "oidc":
            identity_id = runner.get_input("doppler-identity-id", required=True)
        else:
            token = runner.get_input("doppler-token", required=True)

        return cls(
            auth_method=auth_method,
            api_domain=runner.get_input("doppler-api-domain") or DEFAULT_API_DOMAIN,
            identity_id=identity_id,
            token=token,
            project=runner.get_input("doppler-project"),
            config=runner.get_input("doppler-config"),
            parse_json_secrets=runner.get_input("parse-json-secrets"),
            json_key_prefix=runner.get_input("json-key-prefix"),
            auto_detect_json=runner.get_input("auto-detect-json"),
            inject_env_vars=runner.get_input("inject-env-vars"),
        )


def resolve_auth_method(method: str) -> str:
    """
    Validate the auth-method input.

    Raises:
        ConfigurationError: If method is neither 'oidc' nor 'token'
    """
    if method not in AUTH_METHODS:
        raise ConfigurationError("Unsupported auth-method")
    return method


def token_kind(token: str) -> str:
    """
    Classify a Doppler credential by its prefix.

    Returns:
        'service_account', 'personal', or 'other' (service tokens are
        already scoped to a single config)
    """
    if token.startswith(SERVICE_ACCOUNT_PREFIXES):
        return "service_account"
    if token.startswith(PERSONAL_PREFIX):
        return "personal"
    return "other"


def resolve_scope(token: str, project: str, config: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Work out which project/config to fetch for a credential.

    Args:
        token: Doppler credential (after any OIDC exchange)
        project: doppler-project input
        config: doppler-config input

    Returns:
        (project, config) for service account and personal tokens,
        (None, None) for tokens already bound to a config

    Raises:
        ConfigurationError: If the token kind needs a project and config but one is missing
    """
    kind = token_kind(token)
    if kind == "other":
        return None, None

    if not (project and config):
        if kind == "personal":
            raise ConfigurationError(
                "doppler-project and doppler-config inputs are required when using a Personal token. "
                "Additionally, we recommend switching to Service Accounts."
            )
        raise ConfigurationError(
            "doppler-project and doppler-config inputs are required when using a Service Account token"
        )

    logger.debug(f"Using project '{project}' and config '{config}' for {kind} token")
    return project, config


def apply_development_defaults(environ: MutableMapping[str, str]) -> bool:
    """
    Populate inputs from DOPPLER_* variables for local runs.

    Only applies when DOPPLER_ACTION_ENV=development and DOPPLER_TOKEN is set.

    Returns:
        True if development defaults were applied
    """
    if environ.get(DEV_MODE_VAR) != "development" or not environ.get("DOPPLER_TOKEN"):
        return False

    environ[input_env_name("auth-method")] = "token"
    environ[input_env_name("doppler-api-domain")] = DEFAULT_API_DOMAIN
    environ[input_env_name("doppler-token")] = environ["DOPPLER_TOKEN"]
    environ[input_env_name("doppler-project")] = environ.get("DOPPLER_PROJECT", "")
    environ[input_env_name("doppler-config")] = environ.get("DOPPLER_CONFIG", "")
    logger.info("Development mode: using DOPPLER_TOKEN from the environment")
    return True


def load_inputs_file(path: str, environ: MutableMapping[str, str]) -> Dict[str, Any]:
    """
    Load action inputs from a YAML file for local runs.

    Each entry is exported as INPUT_<NAME> unless that variable is already
    set, so values supplied by the runner always win.

    Args:
        path: Path to a YAML mapping of input name to value
        environ: Environment mapping to populate

    Returns:
        The parsed mapping

    Raises:
        ConfigurationError: If the file is missing, unreadable, or not a mapping
    """
    inputs_path = Path(path)
    if not inputs_path.is_file():
        raise ConfigurationError(f"Inputs file not found at: {inputs_path}")

    try:
        with open(inputs_path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse YAML inputs at {inputs_path}: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to read inputs file at {inputs_path}: {e}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Inputs file at {inputs_path} must be a mapping of input names to values\n"
            f"Example:\n"
            f"auth-method: token\n"
            f"doppler-token: dp.st.xxxx"
        )

    for name, value in data.items():
        env_name = input_env_name(str(name))
        if env_name in environ:
            logger.debug(f"Input '{name}' already set in environment, ignoring file value")
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        environ[env_name] = "" if value is None else str(value)

    logger.info(f"Loaded {len(data)} inputs from {inputs_path}")
    return data
