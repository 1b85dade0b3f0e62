"""
Chat transport clients: send replies and fetch attachments.

One client per provider, selected the same way as the inbound normalizer
(see inbound_message_adapter.resolve_provider). Each client holds one
httpx.Client, which is thread-safe and pools connections.

Environment variables
---------------------
TELEGRAM_BOT_TOKEN         Bot token for the Telegram Bot API.
WHATSAPP_ACCESS_TOKEN      Graph API access token for WhatsApp Cloud API.
WHATSAPP_PHONE_NUMBER_ID   Sender phone number id for WhatsApp replies.
"""

import os
from functools import lru_cache
from typing import Optional

import httpx
from dotenv import load_dotenv

from app.models.inbound_message import MediaRef
from app.services.inbound_message_adapter import resolve_provider

load_dotenv()

TELEGRAM_API_URL = "https://api.telegram.org"
GRAPH_API_URL = "https://graph.facebook.com/v21.0"

# Both providers cap a text message at 4096 characters
MAX_MESSAGE_CHARS = 4096
REQUEST_TIMEOUT_SECONDS = 30.0


class TransportError(Exception):
    """A chat provider API call failed."""


def split_text(text: str, max_chars: int = MAX_MESSAGE_CHARS) -> list[str]:
    """
    Split text into chunks no longer than max_chars, on line boundaries
    where possible. Lines longer than max_chars are hard-wrapped.
    """
    chunks: list[str] = []
    buf: list[str] = []
    size = 0

    def flush():
        nonlocal buf, size
        if buf:
            chunks.append("\n".join(buf))
        buf = []
        size = 0

    for line in text.split("\n"):
        while len(line) > max_chars:
            flush()
            chunks.append(line[:max_chars])
            line = line[max_chars:]
        add_len = len(line) + (1 if buf else 0)
        if size + add_len > max_chars:
            flush()
            add_len = len(line)
        buf.append(line)
        size += add_len

    flush()
    return chunks or [""]


class TelegramTransport:
    """Telegram Bot API client."""

    def __init__(self, token: str, client: Optional[httpx.Client] = None):
        if not token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required for the telegram transport")
        self._token = token
        self._client = client or httpx.Client(timeout=REQUEST_TIMEOUT_SECONDS)

    def _call(self, method: str, payload: dict) -> dict:
        url = f"{TELEGRAM_API_URL}/bot{self._token}/{method}"
        try:
            response = self._client.post(url, json=payload)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TransportError(f"Telegram API error ({method}): {e}") from e

        if not data.get("ok"):
            raise TransportError(
                f"Telegram API error ({method}): {data.get('description', data)}"
            )
        return data["result"]

    def send_reply(self, recipient_id: str, text: str) -> None:
        for chunk in split_text(text):
            self._call("sendMessage", {"chat_id": recipient_id, "text": chunk})

    def fetch_media(self, media: MediaRef) -> bytes:
        file_info = self._call("getFile", {"file_id": media.content_ref})
        file_path = file_info.get("file_path")
        if not file_path:
            raise TransportError("Telegram getFile returned no file_path")

        url = f"{TELEGRAM_API_URL}/file/bot{self._token}/{file_path}"
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TransportError(f"Telegram file download failed: {e}") from e
        return response.content


class WhatsAppTransport:
    """WhatsApp Cloud API client."""

    def __init__(
        self,
        access_token: str,
        phone_number_id: str,
        client: Optional[httpx.Client] = None,
    ):
        if not access_token or not phone_number_id:
            raise ValueError(
                "WHATSAPP_ACCESS_TOKEN and WHATSAPP_PHONE_NUMBER_ID are required "
                "for the whatsapp transport"
            )
        self._headers = {"Authorization": f"Bearer {access_token}"}
        self._phone_number_id = phone_number_id
        self._client = client or httpx.Client(timeout=REQUEST_TIMEOUT_SECONDS)

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = self._client.request(method, url, headers=self._headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TransportError(f"WhatsApp API error: {e}") from e
        return response

    def send_reply(self, recipient_id: str, text: str) -> None:
        url = f"{GRAPH_API_URL}/{self._phone_number_id}/messages"
        for chunk in split_text(text):
            self._request(
                "POST",
                url,
                json={
                    "messaging_product": "whatsapp",
                    "to": recipient_id,
                    "type": "text",
                    "text": {"body": chunk},
                },
            )

    def fetch_media(self, media: MediaRef) -> bytes:
        # Media ids resolve to a short-lived download URL first
        info = self._request("GET", f"{GRAPH_API_URL}/{media.content_ref}").json()
        media_url = info.get("url")
        if not media_url:
            raise TransportError("WhatsApp media lookup returned no url")
        return self._request("GET", media_url).content


@lru_cache()
def build_transport(provider: str | None = None):
    """Build the transport client for provider (or CHAT_PROVIDER)."""
    resolved = resolve_provider(provider)
    if resolved == "whatsapp":
        return WhatsAppTransport(
            os.getenv("WHATSAPP_ACCESS_TOKEN", ""),
            os.getenv("WHATSAPP_PHONE_NUMBER_ID", ""),
        )
    return TelegramTransport(os.getenv("TELEGRAM_BOT_TOKEN", ""))
