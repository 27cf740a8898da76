"""Input validation for CLI arguments."""
import sys
from pathlib import Path

from ..secrets.domains.json_secrets import is_valid_key


def validate_inputs_file(path: str) -> None:
    """
    Validate that an inputs file argument points at a readable file.

    Args:
        path: Path given to --inputs-file

    Raises:
        SystemExit with code 2 if validation fails
    """
    inputs_path = Path(path)
    if not inputs_path.exists():
        print(f"Error: Inputs file does not exist: {inputs_path}", file=sys.stderr)
        sys.exit(2)

    if not inputs_path.is_file():
        print(f"Error: Path is not a file: {inputs_path}", file=sys.stderr)
        sys.exit(2)


def validate_output_key(key: str) -> bool:
    """
    Check an output key and explain the rules when it is rejected.

    Output keys must match: [a-zA-Z_][a-zA-Z0-9_-]*

    Args:
        key: Candidate output or environment variable name

    Returns:
        True if the key is valid
    """
    if is_valid_key(key):
        return True

    print(f"Error: Invalid output key '{key}'", file=sys.stderr)
    print("\nFirst character: a letter or underscore (_)", file=sys.stderr)
    print("Other characters: letters, numbers, underscores (_), hyphens (-)", file=sys.stderr)
    print("\nExamples of valid keys:", file=sys.stderr)
    print("  ✓ DB_HOST", file=sys.stderr)
    print("  ✓ api-key", file=sys.stderr)
    print("  ✓ _internal", file=sys.stderr)
    print("\nExamples of invalid keys:", file=sys.stderr)
    print("  ✗ 1password (starts with a digit)", file=sys.stderr)
    print("  ✗ db.host (contains dot)", file=sys.stderr)
    print("  ✗ MY KEY (contains space)", file=sys.stderr)
    return False
