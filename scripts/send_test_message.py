#!/usr/bin/env python3
"""
Dev helper: send a test chat webhook to the local Drivebot backend.

Builds a webhook payload for the chosen chat provider around a command text
and POST-s it to the /api/chat/inbound endpoint. The backend replies to the
sender through the real provider API, so use a chat id you own.

Usage
-----
# LIST a folder through a Telegram-shaped update, targeting localhost:8000
python scripts/send_test_message.py "LIST /Work"

# WhatsApp payload format
python scripts/send_test_message.py "SUMMARY /Reports" --provider whatsapp --sender 15551234567

# UPLOAD with an attachment that already exists on the provider side
python scripts/send_test_message.py "UPLOAD /Receipts/march.pdf" --file-id BQACAgIAAx --filename scan.pdf

# Print the payload without sending it
python scripts/send_test_message.py "LIST /Work" --dry-run

Environment / .env
------------------
CHAT_PROVIDER    Provider format to use (default: telegram).
                 Overridden by --provider flag.
TEST_CHAT_ID     Sender chat id / phone number used when --sender is omitted.
"""

import argparse
import json
import os
import sys
import textwrap
from pathlib import Path
from typing import Optional

import httpx
from dotenv import load_dotenv


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------

def _build_telegram_payload(
    text: str,
    sender: str,
    file_id: Optional[str],
    filename: str,
    mime_type: str,
) -> dict:
    """
    Build a Telegram Bot API update.

    Commands with an attachment travel in the document caption, the way the
    Telegram apps send them.
    """
    message = {"message_id": 1, "chat": {"id": int(sender) if sender.isdigit() else sender}}
    if file_id:
        message["caption"] = text
        message["document"] = {"file_id": file_id, "file_name": filename, "mime_type": mime_type}
    else:
        message["text"] = text
    return {"update_id": 1, "message": message}


def _build_whatsapp_payload(
    text: str,
    sender: str,
    file_id: Optional[str],
    filename: str,
    mime_type: str,
) -> dict:
    """Build a WhatsApp Cloud API webhook notification with one message."""
    if file_id:
        message = {
            "from": sender,
            "type": "document",
            "document": {"id": file_id, "filename": filename, "mime_type": mime_type, "caption": text},
        }
    else:
        message = {"from": sender, "type": "text", "text": {"body": text}}
    return {
        "object": "whatsapp_business_account",
        "entry": [{"changes": [{"field": "messages", "value": {"messages": [message]}}]}],
    }


_PAYLOAD_BUILDERS = {
    "telegram": _build_telegram_payload,
    "whatsapp": _build_whatsapp_payload,
}


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> int:
    # scripts/ lives one level below the project root
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    load_dotenv(project_root / "backend" / ".env")

    parser = argparse.ArgumentParser(
        prog="send_test_message.py",
        description="Send a test chat webhook to the Drivebot backend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              python scripts/send_test_message.py "LIST /Work"
              python scripts/send_test_message.py "DELETE /Work/old.txt"
              python scripts/send_test_message.py "MOVE /Inbox/a.pdf/Archive"
              python scripts/send_test_message.py "RENAME /Images/pic1.jpg Family Photo.jpg"
              python scripts/send_test_message.py "SUMMARY /Reports" --provider whatsapp
        """),
    )
    parser.add_argument("text", help="Command text, e.g. \"LIST /Work\"")
    parser.add_argument(
        "--url",
        default="http://localhost:8000",
        help="Backend base URL (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--provider",
        default=os.getenv("CHAT_PROVIDER", "telegram"),
        choices=list(_PAYLOAD_BUILDERS),
        help="Webhook payload format to use (default: telegram)",
    )
    parser.add_argument(
        "--sender",
        default=os.getenv("TEST_CHAT_ID", "4242"),
        help="Chat id (Telegram) or phone number (WhatsApp) the reply goes to",
    )
    parser.add_argument(
        "--file-id",
        default=None,
        metavar="ID",
        help="Provider media id to attach (Telegram file_id or WhatsApp media id)",
    )
    parser.add_argument("--filename", default="attachment.pdf", help="Declared attachment file name")
    parser.add_argument("--mime-type", default="application/pdf", help="Declared attachment MIME type")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the payload JSON without sending it.",
    )

    args = parser.parse_args()

    payload = _PAYLOAD_BUILDERS[args.provider](
        text=args.text,
        sender=args.sender,
        file_id=args.file_id,
        filename=args.filename,
        mime_type=args.mime_type,
    )
    endpoint = f"{args.url.rstrip('/')}/api/chat/inbound"

    print(f"Provider  : {args.provider}")
    print(f"Endpoint  : {endpoint}")
    print(f"Sender    : {args.sender}")
    print(f"Text      : {args.text}")
    if args.file_id:
        print(f"Attachment: {args.filename} ({args.file_id})")

    if args.dry_run:
        print("\n[DRY RUN] Payload:")
        print(json.dumps(payload, indent=2))
        return 0

    try:
        response = httpx.post(endpoint, params={"provider": args.provider}, json=payload, timeout=120.0)
    except httpx.HTTPError as e:
        print(f"\nERROR: Could not reach {endpoint}: {e}", file=sys.stderr)
        return 1

    symbol = "OK" if response.status_code == 200 else "FAIL"
    print(f"\n[{symbol}] HTTP {response.status_code}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        print(response.text)
    return 0 if response.status_code == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
