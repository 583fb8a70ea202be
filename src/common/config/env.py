"""Typed environment variable parsing helpers."""

import os
from typing import Callable, Optional, TypeVar

T = TypeVar("T")

_TRUTHY = ("true", "1", "yes", "on")
_FALSEY = ("false", "0", "no", "off", "")


def _read(name: str, required: bool) -> Optional[str]:
    value = os.getenv(name)
    if value is None and required:
        raise KeyError(f"Environment variable '{name}' is required but not set.")
    return value


def _parse(
    name: str,
    default: Optional[T],
    required: bool,
    convert: Callable[[str], T],
    kind: str,
) -> Optional[T]:
    value = _read(name, required)
    if value is None:
        return default
    try:
        return convert(value.strip())
    except ValueError:
        raise ValueError(f"Environment variable '{name}' must be {kind}, got '{value}'.")


def get_env_str(name: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """Get an environment variable as a string."""
    value = _read(name, required)
    return default if value is None else value


def get_env_int(name: str, default: Optional[int] = None, required: bool = False) -> Optional[int]:
    """Get an environment variable as an integer."""
    return _parse(name, default, required, int, "an integer")


def get_env_float(
    name: str, default: Optional[float] = None, required: bool = False
) -> Optional[float]:
    """Get an environment variable as a float."""
    return _parse(name, default, required, float, "a float")


def _to_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSEY:
        return False
    raise ValueError(value)


def get_env_bool(
    name: str, default: Optional[bool] = None, required: bool = False
) -> Optional[bool]:
    """Get an environment variable as a boolean.

    Truthy: true, 1, yes, on
    Falsey: false, 0, no, off, (empty string)
    """
    return _parse(name, default, required, _to_bool, "a boolean")
