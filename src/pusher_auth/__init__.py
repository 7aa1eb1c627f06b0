"""
pusher-auth - Request signing, channel authorization, end-to-end encryption
and webhook verification for Pusher Channels servers.

Example:
    from pusher_auth import PusherClient

    client = PusherClient(app_id="1", key="my-key", secret="my-secret")
    response = client.authenticate("private-orders", "1234.5678")
    request = client.trigger_request("orders", "order-created", {"id": 42})
"""

from pusher_auth.auth import Authenticator, authorize_channel, validate_socket_id
from pusher_auth.canonical import HttpMethod, parameter_string, string_to_sign
from pusher_auth.channels import (
    Channel,
    ChannelType,
    EncryptedChannel,
    PresenceChannel,
    PrivateChannel,
    PublicChannel,
    channel_type,
    create_channel,
    validate_channel_name,
)
from pusher_auth.client import PusherClient
from pusher_auth.config import PusherConfig
from pusher_auth.encryption import (
    EncryptedPayload,
    PayloadEncryptor,
    derive_channel_key,
    encrypt_for_channel,
)
from pusher_auth.events import Event, build_event
from pusher_auth.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ParseError,
    PusherError,
    ValidationError,
)
from pusher_auth.serialization import canonical_json
from pusher_auth.signature import (
    AuthEnvelope,
    Request,
    SignedRequest,
    lookup_from,
    sign,
    verify,
)
from pusher_auth.types import Credential, WebhookToken
from pusher_auth.webhook import WebHook, WebhookVerdict, verify_webhook

__version__ = "0.1.0"

__all__ = [
    # Main client
    "PusherClient",
    "PusherConfig",
    "Credential",
    "WebhookToken",
    # Request signing
    "HttpMethod",
    "Request",
    "AuthEnvelope",
    "SignedRequest",
    "parameter_string",
    "string_to_sign",
    "sign",
    "verify",
    "lookup_from",
    # Channels
    "Channel",
    "ChannelType",
    "PublicChannel",
    "PrivateChannel",
    "PresenceChannel",
    "EncryptedChannel",
    "channel_type",
    "create_channel",
    "validate_channel_name",
    # Authorization
    "Authenticator",
    "authorize_channel",
    "validate_socket_id",
    # Encryption
    "EncryptedPayload",
    "PayloadEncryptor",
    "derive_channel_key",
    "encrypt_for_channel",
    # Events
    "Event",
    "build_event",
    "canonical_json",
    # Webhooks
    "WebHook",
    "WebhookVerdict",
    "verify_webhook",
    # Exceptions
    "PusherError",
    "ConfigurationError",
    "ValidationError",
    "AuthenticationError",
    "ParseError",
]
