"""
Per-message command pipeline: parse -> route -> format.

handle_message is a function of the inbound message and the collaborator
handles only. Nothing is kept between calls, so any number of messages can be
handled concurrently.
"""

import logging

from pydantic import BaseModel

from app.models.command import Command
from app.models.inbound_message import InboundMessage
from app.models.outcome import Outcome
from app.services.command_parser import parse
from app.services.command_router import RouteContext, route
from app.services.reply_formatter import format_reply

logger = logging.getLogger(__name__)


class HandledMessage(BaseModel):
    """Result of handling one inbound message."""
    command: Command
    outcome: Outcome
    reply: str


async def handle_message(message: InboundMessage, ctx: RouteContext) -> HandledMessage:
    """
    Handle one chat message end to end, without sending the reply.

    Args:
        message: Normalized inbound message
        ctx: Store, summarizer and media loader for this message

    Returns:
        HandledMessage with the parsed command, its outcome and the reply text
    """
    command = parse(message.text, message.attached_media)
    outcome = await route(command, ctx)
    reply = format_reply(command, outcome)

    logger.info(
        f"Handled {command.type.value} from sender {message.sender_id}: {outcome.kind.value}"
    )
    return HandledMessage(command=command, outcome=outcome, reply=reply)
