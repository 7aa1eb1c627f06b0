"""Channel names and the public, private, presence and encrypted channel classes."""

from __future__ import annotations

import re
from enum import Enum

from .exceptions import ValidationError

MAX_CHANNEL_NAME_LENGTH = 200

CHANNEL_NAME_PATTERN = re.compile(r"[A-Za-z0-9_\-=@,.;]+")

PRIVATE_PREFIX = "private-"
PRESENCE_PREFIX = "presence-"
ENCRYPTED_PREFIX = "private-encrypted-"


class ChannelType(str, Enum):
    """Channel class, determined by the name prefix."""

    PUBLIC = "public"
    PRIVATE = "private"
    PRESENCE = "presence"
    PRIVATE_ENCRYPTED = "private-encrypted"


def validate_channel_name(name: str) -> str:
    """
    Check a channel name is 1-200 characters from ``[A-Za-z0-9_-=@,.;]``.

    Returns:
        The name, unchanged

    Raises:
        ValidationError: If the name is not acceptable
    """
    if not isinstance(name, str) or not name:
        raise ValidationError(f"Invalid channel name {name!r}")
    if len(name) > MAX_CHANNEL_NAME_LENGTH:
        raise ValidationError(
            f"Channel name too long (limit {MAX_CHANNEL_NAME_LENGTH} characters): {name[:20]!r}..."
        )
    if not CHANNEL_NAME_PATTERN.fullmatch(name):
        raise ValidationError(f"Invalid characters in channel name {name!r}")
    return name


def channel_type(name: str) -> ChannelType:
    """Classify a channel by its prefix."""
    if name.startswith(ENCRYPTED_PREFIX):
        return ChannelType.PRIVATE_ENCRYPTED
    elif name.startswith(PRIVATE_PREFIX):
        return ChannelType.PRIVATE
    elif name.startswith(PRESENCE_PREFIX):
        return ChannelType.PRESENCE
    else:
        return ChannelType.PUBLIC


def is_encrypted_channel(name: str) -> bool:
    return name.startswith(ENCRYPTED_PREFIX)


class Channel:
    """Base class for all channel types."""

    kind: ChannelType = ChannelType.PUBLIC
    requires_authorization = False
    requires_channel_data = False
    is_encrypted = False

    def __init__(self, name: str) -> None:
        self._name = validate_channel_name(name)

    @property
    def name(self) -> str:
        """Channel name."""
        return self._name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._name!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Channel) and other._name == self._name

    def __hash__(self) -> int:
        return hash(self._name)


class PublicChannel(Channel):
    """
    Public channel - no authorization required.
    Channel names do not have a reserved prefix.
    """


class PrivateChannel(Channel):
    """
    Private channel - subscribers need an HMAC authorization token.
    Channel names are prefixed with 'private-'.
    """

    kind = ChannelType.PRIVATE
    requires_authorization = True


class PresenceChannel(PrivateChannel):
    """
    Presence channel - authorized with member data.
    Channel names are prefixed with 'presence-'. The authorization must
    carry channel data identifying the member by ``user_id``.
    """

    kind = ChannelType.PRESENCE
    requires_channel_data = True


class EncryptedChannel(PrivateChannel):
    """
    End-to-end encrypted private channel.
    Channel names are prefixed with 'private-encrypted-'. Event data is
    sealed with a key derived from the channel name and the master key.
    """

    kind = ChannelType.PRIVATE_ENCRYPTED
    is_encrypted = True


_CHANNEL_CLASSES: dict[ChannelType, type[Channel]] = {
    ChannelType.PUBLIC: PublicChannel,
    ChannelType.PRIVATE: PrivateChannel,
    ChannelType.PRESENCE: PresenceChannel,
    ChannelType.PRIVATE_ENCRYPTED: EncryptedChannel,
}


def create_channel(name: str) -> Channel:
    """
    Factory function to create the appropriate channel type based on name prefix.

    Args:
        name: Channel name

    Returns:
        Appropriate Channel subclass instance

    Raises:
        ValidationError: If the name is invalid
    """
    validate_channel_name(name)
    return _CHANNEL_CLASSES[channel_type(name)](name)
