"""HMAC-SHA256 authorization for private/presence channels and user sign-in."""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
from collections.abc import Mapping
from typing import Any

from .channels import create_channel, validate_channel_name
from .encryption import PayloadEncryptor
from .exceptions import ConfigurationError, ValidationError
from .serialization import canonical_json, encode_with
from .types import Credential, CredentialLike, JsonEncoder

logger = logging.getLogger(__name__)

SOCKET_ID_PATTERN = re.compile(r"[0-9]+\.[0-9]+")


def validate_socket_id(socket_id: Any) -> str:
    """
    Check a socket id has the ``digits.digits`` form issued by the server.

    Raises:
        ValidationError: If the socket id is missing or malformed
    """
    if not isinstance(socket_id, str) or not SOCKET_ID_PATTERN.fullmatch(socket_id):
        raise ValidationError(f"Invalid socket ID {socket_id!r}")
    return socket_id


class Authenticator:
    """
    Handles HMAC-SHA256 authorization for private/presence channels.

    The signature is computed as:
        HMAC-SHA256(app_secret, f"{socket_id}:{channel_name}")

    For presence channels, channel data is included:
        HMAC-SHA256(app_secret, f"{socket_id}:{channel_name}:{channel_data_json}")

    User authentication signs:
        HMAC-SHA256(app_secret, f"{socket_id}::user::{user_data_json}")

    The JSON string is what gets signed, so the encoder must be deterministic.
    """

    def __init__(
        self,
        credential: CredentialLike,
        json_encoder: JsonEncoder = canonical_json,
        encryptor: PayloadEncryptor | None = None,
    ) -> None:
        self.credential = Credential.coerce(credential)
        self.json_encoder = json_encoder
        self.encryptor = encryptor

    def authentication_string(
        self,
        socket_id: str,
        channel_name: str,
        custom_string: str | None = None,
    ) -> str:
        """
        Compute the ``key:signature`` token for a channel subscription.

        Args:
            socket_id: The subscriber's socket id
            channel_name: The channel to authorize
            custom_string: Already-encoded channel data to include

        Returns:
            String in format "app_key:hex_digest"
        """
        validate_socket_id(socket_id)
        validate_channel_name(channel_name)
        if custom_string is not None and not isinstance(custom_string, str):
            raise ValidationError("Custom argument must be a string")

        string_to_sign = f"{socket_id}:{channel_name}"
        if custom_string is not None:
            string_to_sign = f"{string_to_sign}:{custom_string}"
        return self._sign(string_to_sign)

    def authenticate(
        self,
        socket_id: str,
        channel_name: str,
        custom_data: Any = None,
    ) -> dict[str, str]:
        """
        Generate the authorization response for a channel subscription.

        Args:
            socket_id: The socket ID sent by the subscribing client
            channel_name: The channel to authorize
            custom_data: Channel data (presence channels must include 'user_id')

        Returns:
            Dict with 'auth', plus 'channel_data' when custom data is given and
            'shared_secret' for private-encrypted channels
        """
        validate_socket_id(socket_id)
        channel = create_channel(channel_name)

        if channel.requires_channel_data:
            if not isinstance(custom_data, Mapping) or custom_data.get("user_id") in (None, ""):
                raise ValidationError("Presence channels require channel data with a 'user_id'")

        channel_data = None
        if custom_data is not None:
            channel_data = encode_with(self.json_encoder, custom_data, "channel data")

        response = {"auth": self.authentication_string(socket_id, channel_name, channel_data)}
        if channel_data is not None:
            response["channel_data"] = channel_data
        if channel.is_encrypted:
            response["shared_secret"] = self._encryptor().shared_secret(channel_name)
        return response

    def authenticate_user(self, socket_id: str, user_data: Mapping[str, Any]) -> dict[str, str]:
        """
        Generate the response for a ``pusher:signin`` user authentication.

        Args:
            socket_id: The socket ID of the connection signing in
            user_data: User fields; must include a non-empty 'id'

        Returns:
            Dict with 'auth' and 'user_data'
        """
        validate_socket_id(socket_id)
        if not isinstance(user_data, Mapping):
            raise ValidationError("User data must be a mapping")
        user_id = user_data.get("id")
        if user_id is None or user_id == "":
            raise ValidationError("User data must include a non-empty 'id'")

        encoded = encode_with(self.json_encoder, user_data, "user data")
        return {
            "auth": self._sign(f"{socket_id}::user::{encoded}"),
            "user_data": encoded,
        }

    def _encryptor(self) -> PayloadEncryptor:
        if self.encryptor is None:
            raise ConfigurationError(
                "Cannot authorize encrypted channels: no encryption master key configured"
            )
        return self.encryptor

    def _sign(self, message: str) -> str:
        """
        Generate HMAC-SHA256 signature.

        Returns:
            String in format "app_key:hex_digest"
        """
        logger.debug(f"Signing {message!r}")
        signature = hmac.new(
            self.credential.secret_bytes,
            message.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
        return f"{self.credential.key}:{signature}"


def authorize_channel(
    credential: CredentialLike,
    socket_id: str,
    channel_name: str,
    custom_data: Any = None,
    *,
    json_encoder: JsonEncoder = canonical_json,
    encryptor: PayloadEncryptor | None = None,
) -> dict[str, str]:
    """Authorize one subscription without keeping an Authenticator around."""
    return Authenticator(credential, json_encoder, encryptor).authenticate(
        socket_id, channel_name, custom_data
    )
