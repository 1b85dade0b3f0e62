"""
Pydantic models for the chat webhook API.
"""

from typing import Optional
from pydantic import BaseModel


class InboundChatResponse(BaseModel):
    """
    Response body for POST /api/chat/inbound.

    status:
      ok            message handled and reply sent
      reply_failed  message handled but the reply could not be delivered
      ignored       payload carried no user message
    """
    status: str
    command: Optional[str] = None
    outcome: Optional[str] = None
    reply: Optional[str] = None
