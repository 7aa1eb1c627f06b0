"""Canonical string construction for signed HTTP API requests."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from .exceptions import ValidationError

SIGNATURE_PARAM = "auth_signature"


class HttpMethod(str, Enum):
    """HTTP verbs the signing protocol covers."""

    GET = "GET"
    POST = "POST"

    @classmethod
    def parse(cls, method: str | HttpMethod) -> HttpMethod:
        """Normalize a verb, accepting any letter case."""
        if isinstance(method, HttpMethod):
            return method
        try:
            return cls(str(method).upper())
        except ValueError:
            raise ValidationError(f"Unsupported HTTP method: {method!r}") from None


def _format_value(key: str, value: Any) -> str:
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        raise ValidationError(f"Parameter {key!r} has multiple values; only single values can be signed")
    if value is None:
        raise ValidationError(f"Parameter {key!r} has no value")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def normalize_params(params: Mapping[str, Any]) -> dict[str, str]:
    """
    Lower-case parameter keys and render values as strings (booleans as ``true``/``false``).

    Raises:
        ValidationError: On non-scalar values, or keys that collide once lower-cased
    """
    normalized: dict[str, str] = {}
    for key, value in params.items():
        lowered = str(key).lower()
        if lowered in normalized:
            raise ValidationError(f"Duplicate parameter {key!r} (keys are case-insensitive)")
        normalized[lowered] = _format_value(str(key), value)
    return normalized


def parameter_string(params: Mapping[str, Any]) -> str:
    """
    Serialize parameters as sorted ``key=value`` pairs joined by ``&``.

    The signature parameter is excluded since it cannot sign itself.
    Values are not URL-encoded.
    """
    normalized = normalize_params(params)
    normalized.pop(SIGNATURE_PARAM, None)
    return "&".join(f"{key}={normalized[key]}" for key in sorted(normalized))


def string_to_sign(
    method: str | HttpMethod,
    path: str,
    params: Mapping[str, Any],
    body: str | bytes | None = None,
) -> str:
    """
    Build the exact string that is HMAC-signed for a request.

    Layout is ``METHOD\\nPATH\\nPARAM_STRING``, with ``\\nBODY`` appended
    when a body is passed in.

    Args:
        method: GET or POST
        path: Request path, e.g. ``/apps/1/events``
        params: Query and auth parameters
        body: Raw body to append to the string

    Returns:
        The canonical string

    Raises:
        ValidationError: On an unsupported method, bad parameters, or a
            bytes body that is not UTF-8
    """
    parts = [HttpMethod.parse(method).value, path, parameter_string(params)]
    if body is not None:
        if isinstance(body, bytes):
            try:
                body = body.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ValidationError("Request body must be UTF-8 to be signed inline") from e
        parts.append(body)
    return "\n".join(parts)
