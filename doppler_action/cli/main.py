"""CLI entrypoint for doppler-secrets-action."""
import os
import sys
import argparse
import logging

from .validators import validate_inputs_file, validate_output_key

VERSION = "0.1.0"

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stdout as workflow commands."""
    from doppler_action.secrets.domains.runner import WorkflowCommandHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[WorkflowCommandHandler(sys.stdout)],
        force=True,
    )


def cmd_version(args):
    """Show version information."""
    print(f"doppler-secrets-action {VERSION}")


def cmd_check_key(args):
    """Check whether a name can be used as an output key."""
    if validate_output_key(args.key):
        print(f"Valid output key: {args.key}")
        sys.exit(0)
    sys.exit(1)


def cmd_run(args):
    """Fetch Doppler secrets and publish them to the workflow."""
    from doppler_action.secrets.domains.config_loader import apply_development_defaults, load_inputs_file
    from doppler_action.secrets.domains.runner import GitHubActionsRunner
    from doppler_action.secrets.workflows.secret_operations import run

    runner = GitHubActionsRunner()
    try:
        apply_development_defaults(os.environ)
        if args.inputs_file:
            load_inputs_file(args.inputs_file, os.environ)
        run(runner)
    except Exception as e:
        runner.set_failed(str(e))
        sys.exit(1)


def main():
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (configuration, authentication, Doppler API, etc.)
        2 - Usage errors (invalid arguments, missing inputs file, etc.)
    """
    parser = argparse.ArgumentParser(
        prog="doppler-action",
        description="Fetch Doppler secrets into GitHub Actions outputs, masks and environment variables",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (configuration, authentication, Doppler API, etc.)
  2 - Usage error (invalid arguments, missing inputs file, etc.)

Inputs are read from INPUT_* environment variables, as set by the runner
(for example INPUT_AUTH-METHOD, INPUT_DOPPLER-TOKEN, INPUT_PARSE-JSON-SECRETS).

Local development:
  DOPPLER_ACTION_ENV=development with DOPPLER_TOKEN, DOPPLER_PROJECT and
  DOPPLER_CONFIG set runs with token auth, or pass --inputs-file inputs.yml.
        """
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Emit debug messages"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # version command
    _version_parser = subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of doppler-secrets-action"
    )

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Fetch secrets and publish them",
        description="""
Fetch secrets from Doppler and publish them to the workflow.

Behavior:
  1. Validates inputs (auth-method, token, project/config)
  2. Authenticates with a token or by exchanging the workflow OIDC token
  3. Sets one output per secret and masks its value
  4. Decomposes JSON secrets (parse-json-secrets, auto-detect-json)
     into one output per top-level key
  5. Exports everything as environment variables when inject-env-vars is true

Exit codes:
  0 - Secrets published
  1 - Configuration, authentication or API error
  2 - Invalid --inputs-file
        """
    )
    run_parser.add_argument(
        "--inputs-file",
        help="YAML file of action inputs for local runs (runner-provided INPUT_* variables take precedence)"
    )

    # check-key command
    check_key_parser = subparsers.add_parser(
        "check-key",
        help="Check an output key",
        description="Check whether a name is a valid output/environment variable key ([a-zA-Z_][a-zA-Z0-9_-]*)"
    )
    check_key_parser.add_argument(
        "key",
        help="Candidate key"
    )

    args = parser.parse_args()

    # If no command provided, show help and exit with usage error code
    if not args.command:
        parser.print_help()
        sys.exit(2)

    configure_logging(args.verbose)

    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "run":
            if args.inputs_file:
                validate_inputs_file(args.inputs_file)
            cmd_run(args)
        elif args.command == "check-key":
            cmd_check_key(args)
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
