#!/usr/bin/env python3
"""
Webhook verification example for pusher-auth.

Reads a webhook body from stdin and checks it against the key and
signature given on the command line, as a web handler would with the
X-Pusher-Key and X-Pusher-Signature headers.

Environment variables required:
    PUSHER_KEY: Your application key
    PUSHER_SECRET: Your application secret
"""

import logging
import sys

from pusher_auth import ParseError, PusherClient, WebhookVerdict

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    if len(sys.argv) != 3:
        print("Usage: webhook_receiver.py KEY SIGNATURE < body.json")
        sys.exit(2)

    key, signature = sys.argv[1], sys.argv[2]
    body = sys.stdin.buffer.read()

    client = PusherClient()
    webhook = client.webhook(key, signature, body)

    verdict = webhook.check()
    if verdict is not WebhookVerdict.VALID:
        logger.warning("rejected webhook: %s", verdict.value)
        sys.exit(1)

    try:
        for event in webhook.events:
            logger.info("time=%s event=%s", webhook.time.isoformat(), event)
    except ParseError as e:
        logger.error("unreadable webhook: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
