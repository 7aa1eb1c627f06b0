"""JSON encoding shared by channel authorization and event building."""

from __future__ import annotations

import json
from typing import Any, Callable

from .exceptions import ValidationError


def canonical_json(data: Any) -> str:
    """
    Encode data as compact JSON with object keys sorted.

    Channel data is signed as an encoded string, so the same object must
    always encode to the same bytes.
    """
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def encode_with(json_encoder: Callable[[Any], str], data: Any, what: str = "data") -> str:
    """
    Run an encoder over caller-supplied data.

    Raises:
        ValidationError: If the encoder cannot represent the data
    """
    try:
        return json_encoder(data)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Cannot encode {what} as JSON: {e}") from e
