"""JSON detection, output key validation and safe decomposition of secrets."""
import json
import logging
import re
from typing import Any, Dict

logger = logging.getLogger(__name__)

# Output and environment variable names: letter or underscore, then [A-Za-z0-9_-]
OUTPUT_KEY_PATTERN = re.compile(r'[a-zA-Z_][a-zA-Z0-9_-]*')


class DecodeError(ValueError):
    """A secret requested for decomposition is not a JSON object."""
    pass


def _reject_constant(name: str):
    raise ValueError(f"Invalid JSON constant: {name}")


def _loads(text: str) -> Any:
    """Parse strict JSON (NaN and Infinity are rejected)."""
    return json.loads(text, parse_constant=_reject_constant)


def is_json_object(value: str) -> bool:
    """
    Check whether a string is valid JSON encoding an object.

    Args:
        value: Candidate secret value

    Returns:
        True only for a JSON object; False for scalars, arrays, null
        and anything that fails to parse
    """
    try:
        parsed = _loads(value)
    except (TypeError, ValueError, RecursionError):
        return False
    return isinstance(parsed, dict)


def is_valid_key(key: str) -> bool:
    """Check whether key can be used as an output or environment variable name."""
    return isinstance(key, str) and OUTPUT_KEY_PATTERN.fullmatch(key) is not None


def decompose(json_text: str, secret_name: str) -> Dict[str, Any]:
    """
    Parse a JSON secret and drop keys that are not valid output names.

    Args:
        json_text: Secret value expected to hold a JSON object
        secret_name: Name of the secret, used in messages

    Returns:
        Mapping of valid keys to their (unconverted) JSON values, in document order

    Raises:
        DecodeError: If json_text is not JSON or does not encode an object
    """
    try:
        parsed = _loads(json_text)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"Invalid JSON in secret {secret_name}: {e}") from e
    except RecursionError as e:
        raise DecodeError(f"JSON in secret {secret_name} is nested too deeply") from e

    if not isinstance(parsed, dict):
        raise DecodeError(f"Secret {secret_name} contains JSON but is not an object")

    result = {}
    for key, value in parsed.items():
        if not is_valid_key(key):
            logger.warning(f'Invalid key "{key}" in JSON secret {secret_name}, skipping this key')
            continue
        result[key] = value
    return result
