"""
Provider-agnostic inbound chat message model.

These models represent a normalized chat message after provider-specific
fields have been stripped away. The command pipeline works exclusively with
these models; only the transport adapter layer knows about Telegram/WhatsApp
formats.
"""

from typing import Optional
from pydantic import BaseModel


class MediaRef(BaseModel):
    """
    Reference to a file attached to a chat message.

    The bytes are not carried here: content_ref is the provider's handle
    (Telegram file_id, WhatsApp media id) and is fetched through the transport
    client only when a command actually needs the content.
    """
    model_config = {"frozen": True}

    content_ref: str
    declared_filename: str
    mime_type: str = "application/octet-stream"


class InboundMessage(BaseModel):
    """
    Normalized inbound chat message, provider-agnostic.

    sender_id doubles as the reply recipient: both supported providers reply
    to the same chat/phone the message came from.
    """

    text: str = ""
    sender_id: str
    attached_media: Optional[MediaRef] = None
