#!/usr/bin/env python3
"""
WhatsApp Instance Watcher

Mounts the connection card against a running API and prints it every time
the status changes. Optionally creates or connects the instance first.

Usage:
    python watch_instance.py --token <access token>
    python watch_instance.py --token <access token> --create --connect
    python watch_instance.py --token <access token> --connect --phone 5511999998888
    python watch_instance.py --token <access token> --connect --qr-out qrcode.png --once

Environment variables:
    ZAPCORRETOR_API_URL: API base URL (default http://localhost:8000)
    ZAPCORRETOR_ACCESS_TOKEN: access token, used when --token is omitted
"""

from __future__ import annotations

import argparse
import asyncio
import base64
import logging
import os
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from client.api_client import ConnectionManagerClient
from client.instance_actions import InstanceActions
from client.notifications import LoggingNotifier
from client.presentation import ConnectionCard
from client.status_poller import POLLING_INTERVAL_SECONDS, StatusPoller


def save_qr_code(card: ConnectionCard, path: Path) -> bool:
    """Write the card's QR code as a PNG file. Returns False when there is none."""
    if not card.qr_code:
        return False
    encoded = card.qr_code.split(",", 1)[1] if card.qr_code.startswith("data:") else card.qr_code
    path.write_bytes(base64.b64decode(encoded))
    return True


async def watch(args: argparse.Namespace) -> int:
    session_expired = asyncio.Event()

    async with ConnectionManagerClient(args.api_url, args.token) as api:
        poller = StatusPoller(
            api.get_instance_status,
            interval=args.interval,
            on_unauthorized=session_expired.set,
        )
        actions = InstanceActions(
            api,
            refetch_status=poller.refresh,
            notifier=LoggingNotifier(),
            on_unauthorized=session_expired.set,
        )
        card = ConnectionCard(poller, actions, is_agent=not args.tenant)

        changed = asyncio.Event()
        poller.subscribe(lambda _: changed.set())

        card.start()
        try:
            if args.create:
                await card.handle_create()
            if args.connect:
                await card.handle_connect(args.phone)
                if args.qr_out and save_qr_code(card, args.qr_out):
                    print(f"QR code written to {args.qr_out}")

            while not session_expired.is_set():
                await changed.wait()
                changed.clear()
                if poller.is_loading:
                    continue
                print(card.render())
                print("-" * 50)
                if args.once:
                    break
        finally:
            card.stop()

    if session_expired.is_set():
        print("Session expired. Sign in again and pass a fresh token.", file=sys.stderr)
        return 1
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Watch the WhatsApp instance of a signed-in user")
    parser.add_argument("--api-url", default=os.getenv("ZAPCORRETOR_API_URL", "http://localhost:8000"))
    parser.add_argument("--token", default=os.getenv("ZAPCORRETOR_ACCESS_TOKEN"), help="User access token")
    parser.add_argument("--interval", type=float, default=POLLING_INTERVAL_SECONDS, help="Polling interval (seconds)")
    parser.add_argument("--create", action="store_true", help="Create the instance before watching")
    parser.add_argument("--connect", action="store_true", help="Start a connection before watching")
    parser.add_argument("--phone", help="Phone number for the pairing-code flow (QR-code flow when omitted)")
    parser.add_argument("--qr-out", type=Path, help="Write the QR code PNG to this file")
    parser.add_argument("--tenant", action="store_true", help="Label the card as the tenant's central number")
    parser.add_argument("--once", action="store_true", help="Exit after the first loaded status")
    args = parser.parse_args()

    if not args.token:
        parser.error("an access token is required (--token or ZAPCORRETOR_ACCESS_TOKEN)")

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    try:
        return asyncio.run(watch(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
