"""Casting policy configuration."""

from __future__ import annotations

from typedupe.domain.casting import CastPolicy, OpaqueValidation

from .env import env_bool, env_int, optional_env
from .errors import ConfigurationError

DEFAULT_INTEGER_BITS = 64


def get_cast_policy() -> CastPolicy:
    """Build the cast policy from ``TYPEDUPE_*`` environment variables."""

    truncate_decimals = env_bool("TYPEDUPE_TRUNCATE_DECIMALS", default=True)
    bits = env_int("TYPEDUPE_INTEGER_BITS", default=DEFAULT_INTEGER_BITS)

    raw_validation = optional_env("TYPEDUPE_OPAQUE_VALIDATION")
    try:
        opaque_validation = (
            OpaqueValidation.STRUCTURED
            if raw_validation is None
            else OpaqueValidation(raw_validation.lower())
        )
    except ValueError as exc:
        choices = ", ".join(member.value for member in OpaqueValidation)
        raise ConfigurationError(
            f"TYPEDUPE_OPAQUE_VALIDATION must be one of {choices}, got {raw_validation!r}"
        ) from exc

    try:
        return CastPolicy.for_integer_bits(
            bits,
            truncate_decimals=truncate_decimals,
            opaque_validation=opaque_validation,
        )
    except ValueError as exc:
        raise ConfigurationError(f"Invalid TYPEDUPE_INTEGER_BITS {bits}: {exc}") from exc
