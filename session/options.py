"""
Typed options for the session engine.

Options are supplied as a plain mapping, merged key by key over
DEFAULT_OPTIONS, and then validated into a SessionEngineOptions model.
Only known keys are accepted; anything else fails with ConfigurationError.
"""

import math
from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from errors.exceptions import ConfigurationError

# Session lifetime of 30 minutes in milliseconds
DEFAULT_DURATION_MS = 1000 * 60 * 30

DEFAULT_OPTIONS: dict[str, Any] = {
    "automatic_touch": True,
    "duration": DEFAULT_DURATION_MS,
    "cookie": {
        "name": "default_sess",
        "path": "/",
        "domain": None,
        "http_only": True,
        "secure": True,
        "same_site": "none",
        "secret": None,
    },
}

# Cookie attribute spellings accepted from callers used to the browser names
OPTION_ALIASES = {
    "httpOnly": "http_only",
    "sameSite": "same_site",
}


class CookieOptions(BaseModel):
    """Attributes of the session cookie."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    name: str = Field(default="default_sess", min_length=1)
    path: str = "/"
    domain: Optional[str] = None
    http_only: bool = Field(default=True, alias="httpOnly")
    secure: bool = True
    same_site: Union[bool, str, None] = Field(default="none", alias="sameSite")
    secret: str = Field(..., min_length=10, strict=True)

    @field_validator("same_site")
    @classmethod
    def validate_same_site(cls, v):
        """Normalize string directives and reject unknown ones."""
        if isinstance(v, str):
            v = v.strip().lower()
            if v not in {"lax", "strict", "none"}:
                raise ValueError("same_site must be 'lax', 'strict', 'none' or a boolean")
        return v


class SessionEngineOptions(BaseModel):
    """Validated SessionEngine configuration."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    duration: Union[int, float] = DEFAULT_DURATION_MS
    automatic_touch: bool = Field(default=True, strict=True)
    cookie: CookieOptions

    @field_validator("duration", mode="before")
    @classmethod
    def validate_duration(cls, v):
        """Accept any finite number of milliseconds that is at least 1."""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("duration must be a number of milliseconds")
        if not math.isfinite(v) or v < 1:
            raise ValueError("duration must be at least 1 millisecond")
        return v


def merge_options(
    defaults: Mapping[str, Any],
    overrides: Mapping[str, Any],
    _path: str = "",
) -> dict[str, Any]:
    """
    Merge ``overrides`` over ``defaults`` one known key at a time.

    Nested sections are merged recursively. Neither input is mutated.

    Args:
        defaults: Mapping that defines every accepted key
        overrides: Caller-supplied values

    Returns:
        A new dictionary holding the merged values

    Raises:
        ConfigurationError: If ``overrides`` contains an unknown key, or a
            non-mapping value for a nested section.
    """
    merged = dict(defaults)
    for raw_key, value in overrides.items():
        key = OPTION_ALIASES.get(raw_key, raw_key)
        if key not in defaults:
            raise ConfigurationError(
                f"new SessionEngine(options) -> unknown option '{_path}{raw_key}'",
                invalid_fields={f"{_path}{raw_key}": "unknown option"},
            )

        default_value = defaults[key]
        if isinstance(default_value, Mapping):
            if not isinstance(value, Mapping):
                raise ConfigurationError(
                    f"new SessionEngine(options.{_path}{key}) -> {key} must be an object.",
                    invalid_fields={f"{_path}{key}": "must be an object"},
                )
            merged[key] = merge_options(default_value, value, f"{_path}{key}.")
        else:
            merged[key] = value
    return merged


def build_options(options: Any) -> SessionEngineOptions:
    """
    Build validated engine options from user input.

    Args:
        options: A mapping of option values, or an existing
            SessionEngineOptions instance which is returned as-is

    Returns:
        The validated SessionEngineOptions

    Raises:
        ConfigurationError: If options is not a mapping, contains unknown
            keys, or fails validation (bad duration, missing or short secret).
    """
    if isinstance(options, SessionEngineOptions):
        return options

    if not isinstance(options, Mapping):
        raise ConfigurationError("new SessionEngine(options) -> options must be an object.")

    merged = merge_options(DEFAULT_OPTIONS, options)
    try:
        return SessionEngineOptions.model_validate(merged)
    except ValidationError as e:
        missing_fields = []
        invalid_fields = {}
        for error in e.errors():
            field_name = ".".join(str(loc) for loc in error.get("loc", []))
            if error.get("type") == "missing":
                missing_fields.append(field_name)
            else:
                invalid_fields[field_name] = error.get("msg", str(error))

        # A secret explicitly left as None reports as a type error; it is missing
        if merged["cookie"].get("secret") is None:
            invalid_fields.pop("cookie.secret", None)
            if "cookie.secret" not in missing_fields:
                missing_fields.append("cookie.secret")

        message = "new SessionEngine(options) -> invalid options."
        if "cookie.secret" in missing_fields or "cookie.secret" in invalid_fields:
            message = (
                "new SessionEngine(options.cookie.secret) -> secret must be a "
                "unique and strong random string."
            )
        elif "duration" in invalid_fields:
            message = (
                "new SessionEngine(options.duration) -> duration must be a valid "
                "number in milliseconds."
            )

        raise ConfigurationError(
            message,
            missing_fields=missing_fields,
            invalid_fields=invalid_fields,
        ) from e
