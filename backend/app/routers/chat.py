"""
Chat webhook router.

Receives chat provider webhooks, runs the message through the command
pipeline and sends the reply back through the provider.

The endpoint is provider-agnostic: it normalises the raw payload via the
inbound_message_adapter service, so switching from Telegram to WhatsApp only
requires changing the CHAT_PROVIDER env var (or the ?provider= query param).

Handled messages always get a 200 response, even when the reply could not be
delivered: providers redeliver on errors, which would re-run a mutation.

Environment variables
---------------------
CHAT_PROVIDER             Which normaliser/transport to use (default: "telegram").
                          Supported values: "telegram", "whatsapp".
SUMMARY_BATCH_SIZE        Documents summarized concurrently (default: 5).
SUMMARY_MAX_FILE_BYTES    Larger documents are skipped by SUMMARY (default: 10 MiB).

Endpoints:
  POST /inbound   — provider webhook
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException

from app.models.chat import InboundChatResponse
from app.services.chat_transport import TransportError, build_transport
from app.services.command_router import context_from_env
from app.services.drive import get_drive_store
from app.services.inbound_message_adapter import normalize_webhook, resolve_provider
from app.services.message_handler import handle_message
from app.services.summarizer import get_summarizer

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Collaborator dependencies (overridden in tests)
# ---------------------------------------------------------------------------

def get_store():
    return get_drive_store()


def get_chat_summarizer():
    return get_summarizer()


def get_transport(provider: Optional[str] = None):
    try:
        resolved = resolve_provider(provider)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    # A missing token or phone number id is a server misconfiguration
    try:
        return build_transport(resolved)
    except ValueError as e:
        logger.error(f"Chat transport unavailable: {e}")
        raise HTTPException(status_code=503, detail=f"Chat transport unavailable: {e}")


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------

@router.post("/inbound", response_model=InboundChatResponse)
async def inbound_message(
    payload: dict = Body(...),
    provider: Optional[str] = None,
    store=Depends(get_store),
    summarizer=Depends(get_chat_summarizer),
    transport=Depends(get_transport),
):
    """
    Handle one inbound chat message.

    Flow:
      1. Normalise the provider payload (400 for an unknown provider).
      2. Ignore payloads without a user message (receipts, edits).
      3. Parse, route and format the command.
      4. Send the reply to the sender.
    """
    try:
        message = normalize_webhook(payload, provider)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if message is None:
        return InboundChatResponse(status="ignored")

    ctx = context_from_env(store, summarizer, media_loader=transport.fetch_media)
    handled = await handle_message(message, ctx)

    status = "ok"
    try:
        await asyncio.to_thread(transport.send_reply, message.sender_id, handled.reply)
    except TransportError:
        logger.exception(f"Failed to deliver reply to {message.sender_id}")
        status = "reply_failed"

    return InboundChatResponse(
        status=status,
        command=handled.command.type.value,
        outcome=handled.outcome.kind.value,
        reply=handled.reply,
    )
