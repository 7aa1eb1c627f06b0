"""
HMAC-SHA256 request signing and verification for the HTTP API.

Protocol 1.0: the signed string is ``METHOD\\nPATH\\nPARAMS`` where PARAMS
holds the query parameters plus ``auth_key``, ``auth_timestamp`` and
``auth_version``, lower-cased and sorted. A request body is covered through
its ``body_md5`` parameter. Signatures are lower-case hex.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .canonical import HttpMethod, string_to_sign
from .exceptions import AuthenticationError, ConfigurationError, ValidationError
from .types import Clock, Credential, CredentialLike, TokenLookup

logger = logging.getLogger(__name__)

AUTH_VERSION = "1.0"
AUTH_PREFIX = "auth_"
BODY_MD5_PARAM = "body_md5"
DEFAULT_TIMESTAMP_GRACE = 600

# http://www.w3.org/TR/NOTE-datetime
ISO8601 = "%Y-%m-%dT%H:%M:%SZ"


@dataclass(frozen=True)
class AuthEnvelope:
    """Authentication fields attached to a signed request."""

    auth_key: str
    auth_timestamp: int
    auth_signature: str
    auth_version: str = AUTH_VERSION

    def to_params(self) -> dict[str, str]:
        return {
            "auth_key": self.auth_key,
            "auth_timestamp": str(self.auth_timestamp),
            "auth_version": self.auth_version,
            "auth_signature": self.auth_signature,
        }


@dataclass(frozen=True)
class SignedRequest:
    """A request ready for the HTTP layer: query parameters carry the envelope."""

    method: str
    path: str
    params: dict[str, Any]
    body: str | bytes | None
    envelope: AuthEnvelope
    string_to_sign: str = field(repr=False)


def _body_bytes(body: str | bytes) -> bytes:
    return body if isinstance(body, bytes) else body.encode("utf-8")


def _iso8601(timestamp: int) -> str:
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime(ISO8601)
    except (OverflowError, OSError, ValueError):
        return str(timestamp)


class Request:
    """
    A request to sign or to authenticate.

    Parameters whose lower-cased key starts with ``auth_`` are held apart
    from the query: signing replaces them, authentication reads them. All
    other keys are kept verbatim.
    """

    def __init__(
        self,
        method: str | HttpMethod,
        path: str,
        params: Mapping[str, Any],
        body: str | bytes | None = None,
    ) -> None:
        if not isinstance(path, str):
            raise ValidationError(f"Expected path to be a string, got {type(path).__name__}")
        if not isinstance(params, Mapping):
            raise ValidationError(f"Expected params to be a mapping, got {type(params).__name__}")

        self.method = HttpMethod.parse(method)
        self.path = path
        self.body = body

        self._query: dict[str, Any] = {}
        self._auth: dict[str, Any] = {}
        for key, value in params.items():
            lowered = str(key).lower()
            if lowered.startswith(AUTH_PREFIX):
                self._auth[lowered] = value
            elif body is not None and lowered == BODY_MD5_PARAM:
                # recomputed from the body below
                continue
            else:
                self._query[key] = value

        if body is not None:
            self._query[BODY_MD5_PARAM] = hashlib.md5(_body_bytes(body)).hexdigest()

    @property
    def query(self) -> dict[str, Any]:
        """Query parameters without any auth fields."""
        return dict(self._query)

    @property
    def signed_params(self) -> dict[str, Any]:
        """Query parameters merged with the auth envelope."""
        if "auth_signature" not in self._auth:
            raise ValidationError("Request not signed")
        return {**self._query, **self._auth}

    def string_to_sign(self) -> str:
        """The canonical string over the query and current auth fields."""
        return string_to_sign(self.method, self.path, {**self._query, **self._auth})

    def sign(self, credential: CredentialLike, clock: Clock = time.time) -> AuthEnvelope:
        """
        Sign the request with a credential at the current time.

        Returns:
            The envelope; it is also merged into ``signed_params``
        """
        if credential is None:
            raise ConfigurationError("Missing credentials: key and secret must be configured")
        credential = Credential.coerce(credential)

        self._auth = {
            "auth_key": credential.key,
            "auth_timestamp": int(clock()),
            "auth_version": AUTH_VERSION,
        }
        signature = self._signature(credential)
        self._auth["auth_signature"] = signature

        return AuthEnvelope(
            auth_key=credential.key,
            auth_timestamp=self._auth["auth_timestamp"],
            auth_signature=signature,
        )

    def authenticate(
        self,
        lookup: TokenLookup,
        timestamp_grace: int | None = DEFAULT_TIMESTAMP_GRACE,
        clock: Clock = time.time,
    ) -> Credential:
        """
        Authenticate using a lookup from ``auth_key`` to credential.

        Returns:
            The credential the request was signed with

        Raises:
            AuthenticationError: If the key is missing or unknown, or any check fails
        """
        key = self._auth.get("auth_key")
        if not key:
            raise AuthenticationError("Authentication key required")

        credential = lookup(str(key))
        if credential is None or not credential.secret:
            raise AuthenticationError("Invalid authentication key")

        self.authenticate_by_token(credential, timestamp_grace, clock)
        return credential

    def authenticate_by_token(
        self,
        credential: Credential,
        timestamp_grace: int | None = DEFAULT_TIMESTAMP_GRACE,
        clock: Clock = time.time,
    ) -> bool:
        """
        Authenticate against a single credential.

        A ``timestamp_grace`` of None skips the timestamp check. Otherwise the
        timestamp must be present and within ``timestamp_grace`` seconds of
        the clock in either direction.

        Raises:
            AuthenticationError: On version, timestamp or signature failure
        """
        self._validate_version()
        self._validate_timestamp(timestamp_grace, clock)
        self._validate_signature(credential)
        return True

    def is_authentic_for(
        self,
        credential: Credential,
        timestamp_grace: int | None = DEFAULT_TIMESTAMP_GRACE,
        clock: Clock = time.time,
    ) -> bool:
        """Like ``authenticate_by_token`` but returns False instead of raising."""
        try:
            return self.authenticate_by_token(credential, timestamp_grace, clock)
        except AuthenticationError as e:
            logger.debug(f"Request authentication failed: {e}")
            return False

    def _signature(self, credential: Credential) -> str:
        message = self.string_to_sign()
        logger.debug(f"Signing {message!r}")
        return hmac.new(credential.secret_bytes, message.encode("utf-8"), hashlib.sha256).hexdigest()

    def _validate_version(self) -> None:
        version = self._auth.get("auth_version")
        if version is not None and str(version) != AUTH_VERSION:
            raise AuthenticationError(f"Version not supported: {version}")

    def _validate_timestamp(self, grace: int | None, clock: Clock) -> None:
        if grace is None:
            return

        raw = self._auth.get("auth_timestamp")
        if raw is None or raw == "":
            raise AuthenticationError("Timestamp required")
        try:
            timestamp = int(raw)
        except (TypeError, ValueError):
            raise AuthenticationError(f"Invalid timestamp: {raw!r}") from None

        now = int(clock())
        if abs(timestamp - now) > grace:
            raise AuthenticationError(
                f"Timestamp expired: Given timestamp ({_iso8601(timestamp)}) "
                f"not within {grace}s of server time ({_iso8601(now)})"
            )

    def _validate_signature(self, credential: Credential) -> None:
        received = str(self._auth.get("auth_signature") or "")
        expected = self._signature(credential)
        if not hmac.compare_digest(received.encode("utf-8"), expected.encode("utf-8")):
            raise AuthenticationError(
                "Invalid signature: you should have sent "
                f"HmacSHA256Hex({self.string_to_sign()!r}, your_secret_key)"
            )


def lookup_from(*credentials: CredentialLike) -> TokenLookup:
    """Build a key lookup over a fixed set of credentials."""
    by_key = {c.key: c for c in map(Credential.coerce, credentials)}
    return by_key.get


def sign(
    credential: CredentialLike,
    method: str | HttpMethod,
    path: str,
    params: Mapping[str, Any],
    body: str | bytes | None = None,
    *,
    clock: Clock = time.time,
) -> SignedRequest:
    """
    Sign a request.

    Args:
        credential: Key and secret to sign with
        method: GET or POST
        path: Request path
        params: Query parameters; stale ``auth_*`` fields are replaced
        body: Optional body, covered through ``body_md5``
        clock: Time source

    Returns:
        SignedRequest whose ``params`` are the query plus the auth envelope
    """
    request = Request(method, path, params, body)
    envelope = request.sign(credential, clock=clock)
    return SignedRequest(
        method=request.method.value,
        path=path,
        params=request.signed_params,
        body=body,
        envelope=envelope,
        string_to_sign=request.string_to_sign(),
    )


def verify(
    lookup: TokenLookup,
    method: str | HttpMethod,
    path: str,
    params: Mapping[str, Any],
    timestamp_grace: int | None = DEFAULT_TIMESTAMP_GRACE,
    *,
    body: str | bytes | None = None,
    clock: Clock = time.time,
) -> Credential:
    """
    Verify a signed request as received.

    When ``body`` is passed, its MD5 replaces any received ``body_md5`` so a
    tampered body fails the signature check.

    Returns:
        The credential that signed the request

    Raises:
        AuthenticationError: If authentication fails
        ValidationError: If the request itself is malformed
    """
    return Request(method, path, params, body).authenticate(lookup, timestamp_grace, clock)
