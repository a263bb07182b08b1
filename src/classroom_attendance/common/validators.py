from __future__ import annotations

from typing import Any, Optional

from ..core.exceptions import MissingRequiredFields


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise MissingRequiredFields(field_name)
    return str(value).strip()


def optional_str(value: Any, default: str) -> str:
    if value is None or not str(value).strip():
        return default
    return str(value).strip()


def as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)
