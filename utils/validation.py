"""Input validation helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List

from flask import current_app, has_app_context

TRUTHY = {"1", "true", "yes", "on", "y"}
FALSY = {"0", "false", "no", "off", "n"}


@dataclass
class ValidationError(ValueError):
    message: str
    field: str | None = None
    invalid: List[Any] | None = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


def log_validation_error(err: ValidationError, *, context: str | None = None) -> None:
    if not has_app_context():
        return
    suffix = f" ({context})" if context else ""
    current_app.logger.warning(
        "Validation error%s: field=%s invalid=%s message=%s",
        suffix,
        err.field,
        err.invalid,
        err.message,
    )


def parse_int(value: Any, *, field: str) -> int:
    """Parse any integer (negative values allowed; callers clamp)."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"Missing {field}.", field=field, invalid=[value])
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field}.", field=field, invalid=[value])


def parse_optional_int(value: Any, *, field: str) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_int(value, field=field)


def parse_positive_int(value: Any, *, field: str = "id", min_value: int = 1) -> int:
    out = parse_int(value, field=field)
    if out < min_value:
        raise ValidationError(f"Invalid {field}.", field=field, invalid=[value])
    return out


def parse_optional_positive_int(value: Any, *, field: str = "id", min_value: int = 1) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_positive_int(value, field=field, min_value=min_value)


def parse_bool(value: Any, *, default: bool = False) -> bool:
    if value is None:
        return default
    text = str(value).strip().lower()
    if text in TRUTHY:
        return True
    if text in FALSY:
        return False
    return default


def sanitize_sql_like_pattern(pattern: str) -> str:
    """Escape LIKE wildcards so user input matches literally (escape char ``\\``)."""
    if not pattern:
        return ""

    pattern = pattern.replace('\\', '\\\\')
    pattern = pattern.replace('%', '\\%')
    pattern = pattern.replace('_', '\\_')

    return pattern


__all__ = [
    "ValidationError",
    "log_validation_error",
    "parse_bool",
    "parse_int",
    "parse_optional_int",
    "parse_optional_positive_int",
    "parse_positive_int",
    "sanitize_sql_like_pattern",
]
