"""Verification and parsing of inbound webhooks."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from .exceptions import ParseError
from .types import Credential, CredentialLike, WebhookToken

logger = logging.getLogger(__name__)

KEY_HEADER = "X-Pusher-Key"
SIGNATURE_HEADER = "X-Pusher-Signature"
JSON_CONTENT_TYPE = "application/json"

TokensLike = Union[CredentialLike, Iterable[CredentialLike], None]


class WebhookVerdict(str, Enum):
    """Outcome of checking a webhook's key and signature."""

    VALID = "valid"
    UNKNOWN_KEY = "unknown_key"
    INVALID_SIGNATURE = "invalid_signature"


def coerce_tokens(tokens: TokensLike) -> list[WebhookToken]:
    """Normalize one token, or an iterable of them, to a list of credentials."""
    if tokens is None:
        return []
    if isinstance(tokens, (Credential, Mapping)):
        return [Credential.coerce(tokens)]
    if isinstance(tokens, tuple) and len(tokens) == 2 and all(isinstance(t, (str, bytes)) for t in tokens):
        return [Credential.coerce(tokens)]
    return [Credential.coerce(token) for token in tokens]


def webhook_signature(secret: str | bytes, body: str | bytes) -> str:
    """Hex HMAC-SHA256 of the raw body."""
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    if isinstance(body, str):
        body = body.encode("utf-8")
    return hmac.new(secret, body, hashlib.sha256).hexdigest()


class WebHook:
    """
    A webhook delivered by the messaging service.

    Validity and parsing are independent: ``check`` only looks at the key,
    the signature and the raw body bytes, while ``data`` parses the body on
    first access.
    """

    def __init__(
        self,
        key: str | None,
        signature: str | None,
        body: str | bytes,
        content_type: str | None = JSON_CONTENT_TYPE,
        tokens: TokensLike = None,
    ) -> None:
        self.key = key
        self.signature = signature
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        self.content_type = content_type or JSON_CONTENT_TYPE
        self._tokens = coerce_tokens(tokens)
        self._data: dict[str, Any] | None = None

    @classmethod
    def from_headers(
        cls,
        headers: Mapping[str, str],
        body: str | bytes,
        tokens: TokensLike = None,
    ) -> WebHook:
        """Build from request headers; header names are matched case-insensitively."""
        lowered = {name.lower(): value for name, value in headers.items()}
        return cls(
            key=lowered.get(KEY_HEADER.lower()),
            signature=lowered.get(SIGNATURE_HEADER.lower()),
            body=body,
            content_type=lowered.get("content-type"),
            tokens=tokens,
        )

    def check(self, extra_tokens: TokensLike = None) -> WebhookVerdict:
        """
        Classify the webhook against the known tokens plus any extras.

        The first token whose key matches decides the outcome.
        """
        for token in self._tokens + coerce_tokens(extra_tokens):
            if self.key is not None and hmac.compare_digest(
                token.key.encode("utf-8"), self.key.encode("utf-8")
            ):
                return self._check_signature(token)

        logger.warning(f"Received webhook with unknown key: {self.key}")
        return WebhookVerdict.UNKNOWN_KEY

    def valid(self, extra_tokens: TokensLike = None) -> bool:
        """Whether the key is known and the signature matches."""
        return self.check(extra_tokens) is WebhookVerdict.VALID

    @property
    def data(self) -> dict[str, Any]:
        """
        The parsed body.

        Raises:
            ParseError: If the content type is not JSON or the body does not parse
        """
        if self._data is None:
            media_type = self.content_type.split(";", 1)[0].strip().lower()
            if media_type != JSON_CONTENT_TYPE:
                raise ParseError(f"Unknown Content-Type ({self.content_type})")
            try:
                parsed = json.loads(self.body)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise ParseError(f"Invalid webhook body: {e}") from e
            if not isinstance(parsed, dict):
                raise ParseError("Webhook body must be a JSON object")
            self._data = parsed
        return self._data

    @property
    def events(self) -> list[dict[str, Any]]:
        """Events (as dicts) contained in the webhook."""
        events = self.data.get("events")
        if not isinstance(events, list):
            raise ParseError("Webhook body has no 'events' list")
        return events

    @property
    def time(self) -> datetime:
        """When the webhook was triggered, from the ``time_ms`` field."""
        time_ms = self.data.get("time_ms")
        if not isinstance(time_ms, (int, float)) or isinstance(time_ms, bool):
            raise ParseError("Webhook body has no numeric 'time_ms'")
        try:
            return datetime.fromtimestamp(time_ms / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise ParseError(f"Webhook 'time_ms' out of range: {time_ms!r}") from e

    def _check_signature(self, token: WebhookToken) -> WebhookVerdict:
        expected = webhook_signature(token.secret, self.body)
        received = self.signature or ""
        if hmac.compare_digest(received.encode("utf-8"), expected.encode("utf-8")):
            return WebhookVerdict.VALID
        logger.warning(f"Received WebHook with invalid signature: got {received!r}")
        return WebhookVerdict.INVALID_SIGNATURE


def verify_webhook(
    tokens: TokensLike,
    key: str | None,
    signature: str | None,
    body: str | bytes,
) -> bool:
    """Check a webhook's key and signature against the acceptable tokens."""
    return WebHook(key, signature, body, tokens=tokens).valid()
