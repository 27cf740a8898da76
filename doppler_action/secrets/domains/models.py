"""Domain models for secret materialization."""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

# Project/config/environment metadata keys, never masked in logs
META_KEYS = frozenset({"DOPPLER_PROJECT", "DOPPLER_CONFIG", "DOPPLER_ENVIRONMENT"})

MASKED = "masked"
UNMASKED = "unmasked"


@dataclass(frozen=True)
class Secret:
    """A secret as returned by the Doppler API."""
    key: str
    computed_value: str
    computed_visibility: str = MASKED

    @classmethod
    def from_api(cls, key: str, payload: Optional[Dict[str, Any]]) -> "Secret":
        """
        Build a Secret from one entry of the Doppler secrets payload.

        Args:
            key: Secret name
            payload: Entry with 'computed' and 'computedVisibility' fields

        Returns:
            Secret with a null computed value normalized to ""
        """
        payload = payload or {}
        return cls(
            key=key,
            computed_value=payload.get("computed") or "",
            computed_visibility=payload.get("computedVisibility") or MASKED,
        )

    @property
    def is_unmasked(self) -> bool:
        """Only unmasked skips masking; masked and restricted are masked."""
        return self.computed_visibility == UNMASKED


@dataclass(frozen=True)
class ParseRequestSpec:
    """Which secrets to decompose as JSON and how to name the results."""
    secrets_to_parse: Tuple[str, ...] = ()
    key_prefix: str = ""
    auto_detect: bool = False

    @classmethod
    def from_inputs(cls, parse_json_secrets: str, json_key_prefix: str, auto_detect_json: str) -> "ParseRequestSpec":
        names = [s.strip() for s in (parse_json_secrets or "").split(",")]
        return cls(
            secrets_to_parse=tuple(name for name in names if name),
            key_prefix=json_key_prefix or "",
            auto_detect=auto_detect_json == "true",
        )

    def output_key(self, inner_key: str) -> str:
        return f"{self.key_prefix}{inner_key}" if self.key_prefix else inner_key


@dataclass(frozen=True)
class DecomposedEntry:
    """One output produced by decomposing a JSON secret."""
    output_key: str
    value: str


@dataclass
class RunStats:
    """Counters reported at the end of a run."""
    total_secrets: int = 0
    parsed_secrets: int = 0
    parsed_keys: int = 0


@dataclass
class RunContext:
    """Everything a single materialization run needs, owned by that run."""
    runner: Any
    parse_spec: ParseRequestSpec
    inject_env: bool = False
    stats: RunStats = field(default_factory=RunStats)
