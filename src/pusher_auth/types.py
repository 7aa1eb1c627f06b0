"""Type definitions for pusher-auth."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TypeAlias, Union

from .exceptions import ConfigurationError

# Wall-clock source returning seconds since the epoch
Clock: TypeAlias = Callable[[], float]

# Serializer for custom data and event bodies
JsonEncoder: TypeAlias = Callable[[Any], str]


@dataclass(frozen=True)
class Credential:
    """
    An application key and its shared secret.

    The secret is opaque: text is used as its UTF-8 bytes. It is excluded
    from ``repr`` so credentials can be logged safely.
    """

    key: str
    secret: str | bytes = field(repr=False)

    def __post_init__(self) -> None:
        if not self.key:
            raise ConfigurationError("Missing credential key")
        if not self.secret:
            raise ConfigurationError("Missing credential secret")
        if not isinstance(self.secret, (str, bytes)):
            raise ConfigurationError(
                f"Credential secret must be str or bytes, got {type(self.secret).__name__}"
            )

    @property
    def secret_bytes(self) -> bytes:
        if isinstance(self.secret, bytes):
            return self.secret
        return self.secret.encode("utf-8")

    @classmethod
    def coerce(cls, value: CredentialLike) -> Credential:
        """
        Build a credential from a Credential, a mapping or a (key, secret) pair.

        Raises:
            ConfigurationError: If the value has no usable key and secret
        """
        if isinstance(value, Credential):
            return value
        if isinstance(value, Mapping):
            return cls(key=value.get("key"), secret=value.get("secret"))  # type: ignore[arg-type]
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(key=value[0], secret=value[1])
        raise ConfigurationError(f"Cannot build a credential from {type(value).__name__}")


# Webhook tokens share the credential shape; extras support secret rotation
WebhookToken: TypeAlias = Credential

CredentialLike: TypeAlias = Union[Credential, Mapping[str, str], tuple[str, str]]

# Resolves an auth_key received on a request to the credential that owns it
TokenLookup: TypeAlias = Callable[[str], Optional[Credential]]
