"""End-to-end payload encryption for private-encrypted channels."""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any

import nacl.secret
import nacl.utils
from nacl.exceptions import CryptoError

from .channels import is_encrypted_channel
from .exceptions import AuthenticationError, ConfigurationError, ValidationError

logger = logging.getLogger(__name__)

MASTER_KEY_LENGTH = 32


def decode_master_key(value: str) -> bytes:
    """
    Decode a base64 master key.

    Raises:
        ConfigurationError: If the value is not base64 of exactly 32 bytes
    """
    try:
        key = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise ConfigurationError("Encryption master key is not valid base64") from None
    if len(key) != MASTER_KEY_LENGTH:
        raise ConfigurationError(
            f"Encryption master key must be {MASTER_KEY_LENGTH} bytes, got {len(key)}"
        )
    return key


def derive_channel_key(channel_name: str, master_key: bytes) -> bytes:
    """Per-channel secret box key: SHA-256 of the channel name followed by the master key."""
    return hashlib.sha256(channel_name.encode("utf-8") + master_key).digest()


@dataclass(frozen=True)
class EncryptedPayload:
    """Nonce and secret box ciphertext, sent base64-encoded as event data."""

    nonce: bytes
    ciphertext: bytes

    def to_dict(self) -> dict[str, str]:
        return {
            "nonce": base64.b64encode(self.nonce).decode("ascii"),
            "ciphertext": base64.b64encode(self.ciphertext).decode("ascii"),
        }

    def to_json(self) -> str:
        """Serialize to the JSON envelope used as the event's data field."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: str | dict[str, Any]) -> EncryptedPayload:
        """Parse an envelope produced by ``to_json``."""
        try:
            parsed = json.loads(raw) if isinstance(raw, str) else raw
            return cls(
                nonce=base64.b64decode(parsed["nonce"], validate=True),
                ciphertext=base64.b64decode(parsed["ciphertext"], validate=True),
            )
        except (json.JSONDecodeError, KeyError, TypeError, binascii.Error, ValueError) as e:
            raise ValidationError(f"Malformed encrypted payload: {e}") from e


class PayloadEncryptor:
    """
    Encrypts event data for ``private-encrypted-`` channels.

    Each channel gets its own key derived from the master key, so no
    per-channel state is stored. Every call draws a fresh random nonce.
    """

    def __init__(self, master_key: bytes | None) -> None:
        if master_key is None:
            raise ConfigurationError(
                "Cannot use encrypted channels: no encryption master key configured"
            )
        if len(master_key) != MASTER_KEY_LENGTH:
            raise ConfigurationError(
                f"Encryption master key must be {MASTER_KEY_LENGTH} bytes, got {len(master_key)}"
            )
        self._master_key = master_key

    def __repr__(self) -> str:
        return "PayloadEncryptor(master_key=**********)"

    def channel_key(self, channel_name: str) -> bytes:
        if not is_encrypted_channel(channel_name):
            raise ValidationError(f"Channel {channel_name!r} is not an encrypted channel")
        return derive_channel_key(channel_name, self._master_key)

    def shared_secret(self, channel_name: str) -> str:
        """Base64 channel key handed to authorized subscribers."""
        return base64.b64encode(self.channel_key(channel_name)).decode("ascii")

    def encrypt(self, channel_name: str, plaintext: str | bytes) -> EncryptedPayload:
        """
        Seal plaintext for a channel.

        Args:
            channel_name: A ``private-encrypted-`` channel
            plaintext: Event data, usually already JSON-encoded

        Returns:
            EncryptedPayload with a fresh nonce
        """
        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")

        box = nacl.secret.SecretBox(self.channel_key(channel_name))
        nonce = nacl.utils.random(nacl.secret.SecretBox.NONCE_SIZE)
        encrypted = box.encrypt(plaintext, nonce)
        logger.debug(f"Encrypted {len(plaintext)} bytes for channel '{channel_name}'")
        return EncryptedPayload(nonce=encrypted.nonce, ciphertext=encrypted.ciphertext)

    def decrypt(self, channel_name: str, payload: EncryptedPayload | str) -> bytes:
        """
        Open a payload sealed for a channel.

        Raises:
            AuthenticationError: If the payload was not sealed with this channel's key
        """
        if not isinstance(payload, EncryptedPayload):
            payload = EncryptedPayload.from_json(payload)

        box = nacl.secret.SecretBox(self.channel_key(channel_name))
        try:
            return box.decrypt(payload.ciphertext, payload.nonce)
        except CryptoError:
            raise AuthenticationError(
                f"Unable to decrypt payload for channel '{channel_name}'"
            ) from None


def encrypt_for_channel(
    master_key: bytes | None, channel_name: str, plaintext: str | bytes
) -> EncryptedPayload:
    """Encrypt plaintext for one encrypted channel with the given master key."""
    return PayloadEncryptor(master_key).encrypt(channel_name, plaintext)
