"""Workflow that turns fetched Doppler secrets into outputs, masks and env vars."""
import json
import logging
import math
from typing import Any, Callable, Dict

from ..domains.models import META_KEYS, DecomposedEntry, RunContext, RunStats, ParseRequestSpec, Secret
from ..domains.json_secrets import DecodeError, decompose, is_json_object
from ..domains.config_loader import ActionInputs, resolve_scope
from ..domains.doppler_client import DopplerClient

logger = logging.getLogger(__name__)


# Above this magnitude JSON.stringify switches to exponent notation, as repr does
MAX_PLAIN_INTEGRAL = 1e21


def _canonical_numbers(value: Any) -> Any:
    """Render floats the way JSON.stringify does: 1.0 -> 1, non-finite -> null."""
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        if value.is_integer() and abs(value) < MAX_PLAIN_INTEGRAL:
            return int(value)
        return value
    if isinstance(value, dict):
        return {k: _canonical_numbers(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_canonical_numbers(v) for v in value]
    return value


def stringify(value: Any) -> str:
    """Strings pass through; everything else becomes compact JSON text."""
    if isinstance(value, str):
        return value
    return json.dumps(_canonical_numbers(value), separators=(",", ":"), ensure_ascii=False)


def should_decompose(secret: Secret, parse_spec: ParseRequestSpec) -> bool:
    """Explicitly listed or auto-detected JSON objects, never blank values."""
    if not secret.computed_value.strip():
        return False
    if secret.key in parse_spec.secrets_to_parse:
        return True
    return parse_spec.auto_detect and is_json_object(secret.computed_value)


def _emit(context: RunContext, key: str, value: str, mask: bool) -> None:
    runner = context.runner
    runner.set_output(key, value)
    if mask:
        runner.set_secret(value)
    if context.inject_env:
        runner.export_variable(key, value)


def materialize_secret(secret: Secret, context: RunContext) -> None:
    """
    Emit one secret, decomposing it first when requested.

    A value that fails to decompose is still emitted verbatim; the failure
    only costs the per-key outputs.
    """
    if should_decompose(secret, context.parse_spec):
        try:
            parsed = decompose(secret.computed_value, secret.key)
        except DecodeError as e:
            logger.warning(f"Failed to parse JSON secret {secret.key}: {e}")
        else:
            for inner_key, inner_value in parsed.items():
                entry = DecomposedEntry(context.parse_spec.output_key(inner_key), stringify(inner_value))
                _emit(context, entry.output_key, entry.value, mask=entry.output_key not in META_KEYS)
                context.stats.parsed_keys += 1
                logger.info(f"Parsed JSON key: {secret.key}.{inner_key} -> {entry.output_key}")
            context.stats.parsed_secrets += 1
            logger.info(f"Successfully parsed JSON secret: {secret.key} ({len(parsed)} keys)")

    _emit(
        context,
        secret.key,
        secret.computed_value,
        mask=secret.key not in META_KEYS and not secret.is_unmasked,
    )
    context.stats.total_secrets += 1


def materialize_secrets(secrets: Dict[str, Secret], context: RunContext) -> RunStats:
    """
    Emit every fetched secret in the order received.

    Args:
        secrets: Mapping of secret name to Secret
        context: Per-run runner, parse settings and counters

    Returns:
        The run's counters
    """
    for secret in secrets.values():
        materialize_secret(secret, context)
    return context.stats


def report_stats(stats: RunStats) -> None:
    logger.info(f"Processed {stats.total_secrets} secrets total")
    if stats.parsed_secrets > 0:
        logger.info(f"Parsed {stats.parsed_secrets} JSON secrets into {stats.parsed_keys} individual outputs")


def authenticate(inputs: ActionInputs, runner, client: DopplerClient) -> str:
    """Return the Doppler token for this run, exchanging an OIDC token if configured."""
    if inputs.auth_method == "oidc":
        oidc_token = runner.get_id_token()
        runner.set_secret(oidc_token)
        return client.oidc_auth(inputs.identity_id, oidc_token)
    return inputs.token


def run(runner, client_factory: Callable[[str], DopplerClient] = DopplerClient) -> RunStats:
    """
    Fetch secrets from Doppler and materialize them for the workflow.

    Configuration errors are raised before any secret is fetched.

    Args:
        runner: GitHub Actions runner primitives
        client_factory: Builds a Doppler client for an API domain

    Returns:
        RunStats for the run

    Raises:
        ConfigurationError: Invalid or missing inputs
        DopplerAPIError: Authentication or fetch failed
        RunnerError: The runner could not supply an OIDC token
    """
    inputs = ActionInputs.from_runner(runner)
    client = client_factory(inputs.api_domain)

    token = authenticate(inputs, runner, client)
    runner.set_secret(token)
    project, config = resolve_scope(token, inputs.project, inputs.config)

    context = RunContext(
        runner=runner,
        parse_spec=ParseRequestSpec.from_inputs(
            inputs.parse_json_secrets, inputs.json_key_prefix, inputs.auto_detect_json
        ),
        inject_env=inputs.inject_env,
    )

    secrets = client.fetch_secrets(token, project, config)
    stats = materialize_secrets(secrets, context)
    report_stats(stats)
    return stats
