#!/usr/bin/env python3
"""
Private and presence channel authorization example for pusher-auth.

Produces the JSON an authorization endpoint returns to a subscribing
client. Wire ``authorize`` into your web framework's auth route.

Environment variables required:
    PUSHER_APP_ID: Your application id
    PUSHER_KEY: Your application key
    PUSHER_SECRET: Your application secret
    PUSHER_ENCRYPTION_MASTER_KEY_BASE64: Optional, for private-encrypted channels
"""

import json
import logging
import sys
from typing import Any

from pusher_auth import PusherClient, PusherError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def authorize(client: PusherClient, socket_id: str, channel_name: str, user_id: str) -> dict[str, Any]:
    """Authorize one subscription for a signed-in user."""
    if channel_name.startswith("presence-"):
        channel_data = {"user_id": user_id, "user_info": {"name": f"user {user_id}"}}
        return client.authenticate(channel_name, socket_id, channel_data)
    return client.authenticate(channel_name, socket_id)


def main() -> None:
    """Main entry point."""
    socket_id = sys.argv[1] if len(sys.argv) > 1 else "1234.5678"
    channel_name = sys.argv[2] if len(sys.argv) > 2 else "private-user.123"

    client = PusherClient()
    try:
        response = authorize(client, socket_id, channel_name, user_id="123")
    except PusherError as e:
        logger.error(f"Authorization refused: {e}")
        sys.exit(1)

    print(json.dumps(response, indent=2))


if __name__ == "__main__":
    main()
