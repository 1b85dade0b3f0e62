"""
Inbound chat message adapter.

Normalizes provider-specific webhook payloads into a single provider-agnostic
InboundMessage model.

Supported providers:
  - telegram  (default; Bot API webhook Update objects)
  - whatsapp  (Meta WhatsApp Cloud API webhook notifications)

Adding a new provider:
  1. Write a normalize_<provider>(payload: dict) -> Optional[InboundMessage].
  2. Register it in _NORMALIZERS.
  3. Add a transport client for it in chat_transport.
  4. Set CHAT_PROVIDER=<provider> in the environment.

Normalizers return None for payloads that carry no user message (edited
messages, delivery/read receipts, membership updates). Those are acknowledged
and otherwise ignored.

Telegram Update field assumptions
---------------------------------
  message.chat.id       int   — reply target, used as sender_id
  message.text          str   — plain text messages
  message.caption       str   — text sent together with a document/photo
  message.document      dict  — file_id, file_name, mime_type
  message.photo         list  — sizes, smallest first; each has file_id and
                                file_unique_id. Photos carry no filename.

WhatsApp Cloud API field assumptions
------------------------------------
  entry[0].changes[0].value.messages[0] with:
  from                  str   — sender phone number, used as sender_id
  type                  str   — "text", "document", "image", ...
  text.body             str
  document              dict  — id, filename, mime_type, caption
  image                 dict  — id, mime_type, caption
"""

import mimetypes
import os
from typing import Callable, Optional

from app.models.inbound_message import InboundMessage, MediaRef


def _default_filename(prefix: str, ref: str, mime_type: str) -> str:
    if mime_type == "image/jpeg":
        extension = ".jpg"
    else:
        extension = mimetypes.guess_extension(mime_type) or ""
    return f"{prefix}_{ref}{extension}"


# ---------------------------------------------------------------------------
# Telegram normalizer
# ---------------------------------------------------------------------------

def normalize_telegram(payload: dict) -> Optional[InboundMessage]:
    """
    Convert a Telegram Bot API Update to InboundMessage.

    Only new messages (``message`` or ``channel_post``) are handled.
    """
    message = payload.get("message") or payload.get("channel_post")
    if not message or "chat" not in message:
        return None

    media: Optional[MediaRef] = None
    document = message.get("document")
    photos = message.get("photo") or []
    if document:
        mime_type = document.get("mime_type") or "application/octet-stream"
        media = MediaRef(
            content_ref=document["file_id"],
            declared_filename=document.get("file_name")
            or _default_filename("document", document.get("file_unique_id", "file"), mime_type),
            mime_type=mime_type,
        )
    elif photos:
        # Last entry is the largest size
        largest = photos[-1]
        media = MediaRef(
            content_ref=largest["file_id"],
            declared_filename=_default_filename(
                "photo", largest.get("file_unique_id", largest["file_id"]), "image/jpeg"
            ),
            mime_type="image/jpeg",
        )

    return InboundMessage(
        text=message.get("text") or message.get("caption") or "",
        sender_id=str(message["chat"]["id"]),
        attached_media=media,
    )


# ---------------------------------------------------------------------------
# WhatsApp normalizer
# ---------------------------------------------------------------------------

def normalize_whatsapp(payload: dict) -> Optional[InboundMessage]:
    """
    Convert a WhatsApp Cloud API webhook notification to InboundMessage.

    Status-only notifications (sent/delivered/read) have no ``messages`` key
    and yield None.
    """
    try:
        value = payload["entry"][0]["changes"][0]["value"]
    except (KeyError, IndexError, TypeError):
        return None

    messages = value.get("messages") or []
    if not messages:
        return None
    message = messages[0]

    text = ""
    media: Optional[MediaRef] = None
    message_type = message.get("type")

    if message_type == "text":
        text = (message.get("text") or {}).get("body", "")
    elif message_type in ("document", "image"):
        item = message.get(message_type) or {}
        mime_type = item.get("mime_type") or "application/octet-stream"
        text = item.get("caption", "")
        media = MediaRef(
            content_ref=item["id"],
            declared_filename=item.get("filename")
            or _default_filename(message_type, item["id"], mime_type),
            mime_type=mime_type,
        )

    return InboundMessage(
        text=text,
        sender_id=str(message.get("from", "")),
        attached_media=media,
    )


# ---------------------------------------------------------------------------
# Registry and dispatcher
# ---------------------------------------------------------------------------

_NORMALIZERS: dict[str, Callable[[dict], Optional[InboundMessage]]] = {
    "telegram": normalize_telegram,
    "whatsapp": normalize_whatsapp,
}


def resolve_provider(provider: str | None = None) -> str:
    """
    Pick the provider name.

    Priority:
      1. provider argument (explicit, used in tests and the webhook endpoint)
      2. CHAT_PROVIDER env var
      3. Default: "telegram"

    Raises ValueError for unknown provider names.
    """
    resolved = provider or os.getenv("CHAT_PROVIDER", "telegram")
    resolved = resolved.lower().strip()
    if resolved not in _NORMALIZERS:
        raise ValueError(
            f"Unknown chat provider {resolved!r}. "
            f"Supported providers: {sorted(_NORMALIZERS)}"
        )
    return resolved


def normalize_webhook(payload: dict, provider: str | None = None) -> Optional[InboundMessage]:
    """
    Route to the correct normalizer based on the provider argument or the
    CHAT_PROVIDER environment variable.

    Raises ValueError for unknown provider names.
    """
    return _NORMALIZERS[resolve_provider(provider)](payload)
