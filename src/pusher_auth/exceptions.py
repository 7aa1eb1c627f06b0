"""Custom exceptions for pusher-auth."""


class PusherError(Exception):
    """Base exception for all pusher-auth errors."""

    pass


class ConfigurationError(PusherError):
    """Missing or invalid credentials or encryption master key."""

    pass


class ValidationError(PusherError):
    """Malformed input: channel name, socket id, parameters or custom data."""

    pass


class AuthenticationError(PusherError):
    """
    Request authentication failed.

    Raised for a missing or unknown key, an unsupported protocol version,
    a missing or expired timestamp, or a signature mismatch. Messages may
    contain the exact string that was signed, so they must not be returned
    to untrusted callers.
    """

    pass


class ParseError(PusherError):
    """Webhook body has an unsupported content type or is not valid JSON."""

    pass
