"""
Document summarization service.
Turns one document's bytes into a short bullet summary with Claude.
"""

import base64
import io
import os
from functools import lru_cache
from typing import Optional

import anthropic
import pdfplumber

# Model configuration
MODEL = os.getenv("SUMMARY_MODEL", "claude-sonnet-4-5-20250929")
MAX_TOKENS = 300

DEFAULT_MAX_CHARS = 100_000

SUMMARY_PROMPT = """\
Summarize the following document for someone deciding whether to open it.

Rules:
- Write a single bullet point of 30 to 40 words.
- Start the line with "- ".
- State what the document is and its key content. No preamble, no closing remark.

DOCUMENT ({mime_hint}):
{document_text}
"""

IMAGE_PROMPT = """\
Describe this image for someone deciding whether to open it.
Write a single bullet point of 30 to 40 words starting with "- ". No preamble.
"""

_IMAGE_MIME_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}

_TEXT_MIME_TYPES = {
    "application/json",
    "application/xml",
    "application/x-yaml",
    # Google-native documents arrive exported as text by the Drive client
    "application/vnd.google-apps.document",
    "application/vnd.google-apps.presentation",
    "application/vnd.google-apps.spreadsheet",
}


class SummarizerError(Exception):
    """The summarization model call failed (quota, overload, bad request...)."""


class UnsupportedDocumentError(Exception):
    """The document's type or content cannot be summarized."""


def is_supported(mime_type: Optional[str]) -> bool:
    """Return True if summarize_document can handle this MIME type."""
    if not mime_type:
        return False
    return (
        mime_type == "application/pdf"
        or mime_type.startswith("text/")
        or mime_type in _TEXT_MIME_TYPES
        or mime_type in _IMAGE_MIME_TYPES
    )


def extract_text_from_pdf(content: bytes) -> str:
    """
    Extract text from PDF bytes using pdfplumber.
    Handles tables and complex layouts.
    Does NOT support scanned PDFs (no OCR).
    """
    text_parts = []

    with pdfplumber.open(io.BytesIO(content)) as pdf:
        for i, page in enumerate(pdf.pages, start=1):
            page_text = page.extract_text()
            if page_text:
                text_parts.append(f"--- Page {i} ---\n{page_text}")

            for table in page.extract_tables():
                rows = [
                    " | ".join(str(cell).strip() if cell else "" for cell in row)
                    for row in table or []
                ]
                if rows:
                    text_parts.append(f"[Table on page {i}]\n" + "\n".join(rows))

    return "\n\n".join(text_parts)


def _clean_bullet(raw_text: str) -> str:
    """Collapse the model's reply to one bullet line."""
    lines = [line.strip() for line in raw_text.strip().splitlines() if line.strip()]
    bullet = " ".join(lines)
    if not bullet.startswith("- "):
        bullet = "- " + bullet.lstrip("-•* ").strip()
    return bullet


class ClaudeSummarizer:
    """
    Summarizer backed by the Anthropic Messages API.

    Holds no per-request state; a fresh Anthropic client is created for
    each document, so one instance serves concurrent summary requests.
    """

    def __init__(self, api_key: str = None, max_chars: int = DEFAULT_MAX_CHARS):
        if api_key is None:
            api_key = os.getenv("ANTHROPIC_API_KEY")
        self._api_key = api_key
        self.max_chars = max_chars

    def _document_text(self, content: bytes, mime_hint: str) -> str:
        if mime_hint == "application/pdf":
            try:
                text = extract_text_from_pdf(content)
            except Exception as e:
                raise UnsupportedDocumentError(f"unreadable PDF: {e}") from e
        else:
            text = content.decode("utf-8", errors="replace")

        if not text.strip():
            raise UnsupportedDocumentError("no extractable text")
        return text[: self.max_chars]

    def _build_content(self, content: bytes, mime_hint: str) -> list[dict]:
        if mime_hint in _IMAGE_MIME_TYPES:
            return [
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": mime_hint,
                        "data": base64.b64encode(content).decode(),
                    },
                },
                {"type": "text", "text": IMAGE_PROMPT},
            ]

        prompt = (
            SUMMARY_PROMPT
            .replace("{mime_hint}", mime_hint)
            .replace("{document_text}", self._document_text(content, mime_hint))
        )
        return [{"type": "text", "text": prompt}]

    def summarize_document(self, content: bytes, mime_hint: str) -> str:
        """
        Summarize one document as a single 30-40 word bullet.

        Raises:
            UnsupportedDocumentError: type not supported or no readable text
            SummarizerError: the API call failed
        """
        if not is_supported(mime_hint):
            raise UnsupportedDocumentError(f"unsupported file type {mime_hint}")

        message_content = self._build_content(content, mime_hint)
        try:
            client = anthropic.Anthropic(api_key=self._api_key)
            response = client.messages.create(
                model=MODEL,
                max_tokens=MAX_TOKENS,
                messages=[{"role": "user", "content": message_content}],
            )
        except anthropic.AnthropicError as e:
            raise SummarizerError(str(e)) from e

        raw_text = "".join(
            block.text for block in response.content if hasattr(block, "text")
        )
        if not raw_text.strip():
            raise SummarizerError("empty response from model")
        return _clean_bullet(raw_text)


@lru_cache()
def get_summarizer() -> ClaudeSummarizer:
    """Build a summarizer from environment variables."""
    return ClaudeSummarizer(
        max_chars=int(os.getenv("SUMMARY_MAX_CHARS", str(DEFAULT_MAX_CHARS))),
    )
