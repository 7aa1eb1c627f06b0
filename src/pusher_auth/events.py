"""Event bodies for the HTTP trigger endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .auth import validate_socket_id
from .channels import is_encrypted_channel, validate_channel_name
from .encryption import PayloadEncryptor
from .exceptions import ConfigurationError, ValidationError
from .serialization import canonical_json, encode_with
from .types import JsonEncoder

logger = logging.getLogger(__name__)

MAX_CHANNELS = 100
MAX_EVENT_NAME_LENGTH = 200


@dataclass(frozen=True)
class Event:
    """An event to publish to one or more channels."""

    name: str
    channels: tuple[str, ...]
    data: str
    socket_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"name": self.name, "channels": list(self.channels), "data": self.data}
        if self.socket_id:
            body["socket_id"] = self.socket_id
        return body

    def to_json(self, json_encoder: JsonEncoder = canonical_json) -> str:
        """Serialize to the request body. ``data`` stays a JSON-encoded string."""
        return json_encoder(self.to_dict())


def _channel_list(channels: str | list[str] | tuple[str, ...]) -> tuple[str, ...]:
    if isinstance(channels, str):
        channels = [channels]
    channels = tuple(channels)

    if not channels:
        raise ValidationError("At least one channel is required")
    if len(channels) > MAX_CHANNELS:
        raise ValidationError(f"Too many channels ({len(channels)}), limit is {MAX_CHANNELS}")
    for name in channels:
        validate_channel_name(name)
    return channels


def build_event(
    channels: str | list[str] | tuple[str, ...],
    event_name: str,
    data: Any,
    socket_id: str | None = None,
    *,
    json_encoder: JsonEncoder = canonical_json,
    encryptor: PayloadEncryptor | None = None,
) -> Event:
    """
    Build an event body, encrypting it for a private-encrypted channel.

    Args:
        channels: One channel name or a list of up to 100
        event_name: Event name, at most 200 characters
        data: Event data; anything but a string is JSON-encoded
        socket_id: Socket to exclude from delivery
        json_encoder: Encoder for non-string data
        encryptor: Required when publishing to an encrypted channel

    Returns:
        The Event

    Raises:
        ValidationError: On bad names, unencodable data, or an encrypted channel
            mixed with others
        ConfigurationError: If an encrypted channel is targeted without a master key
    """
    channel_names = _channel_list(channels)

    if not isinstance(event_name, str) or not event_name:
        raise ValidationError("Event name is required")
    if len(event_name) > MAX_EVENT_NAME_LENGTH:
        raise ValidationError(f"Event name too long (limit {MAX_EVENT_NAME_LENGTH} characters)")
    if socket_id is not None:
        validate_socket_id(socket_id)

    encoded = data if isinstance(data, str) else encode_with(json_encoder, data, "event data")

    encrypted = [name for name in channel_names if is_encrypted_channel(name)]
    if encrypted:
        # one ciphertext is bound to one channel key
        if len(channel_names) > 1:
            raise ValidationError(
                "Cannot trigger to multiple channels if any are encrypted: "
                f"{', '.join(encrypted)}"
            )
        if encryptor is None:
            raise ConfigurationError(
                f"Cannot trigger to encrypted channel '{encrypted[0]}': "
                "no encryption master key configured"
            )
        encoded = encryptor.encrypt(encrypted[0], encoded).to_json()

    logger.debug(f"Built event '{event_name}' for {len(channel_names)} channel(s)")
    return Event(name=event_name, channels=channel_names, data=encoded, socket_id=socket_id)
