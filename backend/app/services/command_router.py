"""
Command router.

Maps each CommandType to an operation plan: an ordered sequence of name
lookups and remote mutations. Every step gates the next one; the first
NotFound or missing argument ends the plan and nothing after it runs. Remote
errors are not retried here (the store client owns its retry policy) and are
turned into a RemoteFailure outcome.

The plan table must cover every CommandType; this is checked at import time.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from app.models.command import Command, CommandType
from app.models.drive import EntryKind
from app.models.inbound_message import MediaRef
from app.models.outcome import (
    NotFound,
    Outcome,
    ParseFailure,
    RemoteFailure,
    Success,
)
from app.services.chat_transport import TransportError
from app.services.drive import DriveError
from app.services.resolver import resolve_file, resolve_folder
from app.services.summarizer import SummarizerError
from app.services.summary_batcher import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_MAX_FILE_BYTES,
    summarize_files,
)

logger = logging.getLogger(__name__)

MediaLoader = Callable[[MediaRef], bytes]


@dataclass(frozen=True)
class RouteContext:
    """Collaborator handles for executing one command."""
    store: object
    summarizer: object = None
    media_loader: Optional[MediaLoader] = None
    batch_size: int = DEFAULT_BATCH_SIZE
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES


def _require(value: Optional[str], what: str) -> Optional[ParseFailure]:
    if value is None or value == "":
        return ParseFailure(reason=f"missing {what}")
    return None


async def _off_loop(func, *args, **kwargs):
    """Run a blocking store/transport call on a worker thread."""
    return await asyncio.to_thread(func, *args, **kwargs)


# ---------------------------------------------------------------------------
# Operation plans
# ---------------------------------------------------------------------------

async def _plan_list(cmd: Command, ctx: RouteContext) -> Outcome:
    folder = await _off_loop(resolve_folder, ctx.store, cmd.arg1)
    if isinstance(folder, NotFound):
        return folder
    # An empty folder is a successful listing
    return Success(payload=await _off_loop(ctx.store.list_children, folder.id))


async def _plan_delete(cmd: Command, ctx: RouteContext) -> Outcome:
    missing = _require(cmd.arg2, "file name")
    if missing:
        return missing

    folder = await _off_loop(resolve_folder, ctx.store, cmd.arg1)
    if isinstance(folder, NotFound):
        return folder
    file = await _off_loop(resolve_file, ctx.store, folder, cmd.arg2)
    if isinstance(file, NotFound):
        return file

    # Trash only; a permanent delete is never issued
    return Success(payload=await _off_loop(ctx.store.soft_delete, file.id))


async def _plan_move(cmd: Command, ctx: RouteContext) -> Outcome:
    missing = _require(cmd.arg2, "file name") or _require(cmd.arg3, "destination folder")
    if missing:
        return missing

    source = await _off_loop(resolve_folder, ctx.store, cmd.arg1, role="source")
    if isinstance(source, NotFound):
        return source
    file = await _off_loop(resolve_file, ctx.store, source, cmd.arg2)
    if isinstance(file, NotFound):
        return file
    destination = await _off_loop(resolve_folder, ctx.store, cmd.arg3, role="destination")
    if isinstance(destination, NotFound):
        return destination

    # Single update call: the file is either moved or left where it was
    moved = await _off_loop(ctx.store.reparent, file.id, destination.id, file.parent_id)
    return Success(payload=moved)


async def _plan_rename(cmd: Command, ctx: RouteContext) -> Outcome:
    missing = _require(cmd.arg2, "file name") or _require(cmd.arg3, "new name")
    if missing:
        return missing

    folder = await _off_loop(resolve_folder, ctx.store, cmd.arg1)
    if isinstance(folder, NotFound):
        return folder
    file = await _off_loop(resolve_file, ctx.store, folder, cmd.arg2)
    if isinstance(file, NotFound):
        return file

    return Success(payload=await _off_loop(ctx.store.rename, file.id, cmd.arg3))


async def _plan_upload(cmd: Command, ctx: RouteContext) -> Outcome:
    folder = await _off_loop(resolve_folder, ctx.store, cmd.arg1)
    if isinstance(folder, NotFound):
        return folder

    if cmd.media is None:
        return ParseFailure(reason="no file attached to the UPLOAD message")
    if ctx.media_loader is None:
        return ParseFailure(reason="attachments are not supported on this channel")

    content = await _off_loop(ctx.media_loader, cmd.media)
    name = cmd.arg2 or cmd.media.declared_filename
    created = await _off_loop(ctx.store.create_file, folder.id, name, content, cmd.media.mime_type)
    return Success(payload=created)


async def _plan_summary(cmd: Command, ctx: RouteContext) -> Outcome:
    folder = await _off_loop(resolve_folder, ctx.store, cmd.arg1)
    if isinstance(folder, NotFound):
        return folder

    children = await _off_loop(ctx.store.list_children, folder.id)
    files = [entry for entry in children if entry.kind is EntryKind.FILE]
    return await summarize_files(
        files,
        ctx.store,
        ctx.summarizer,
        batch_size=ctx.batch_size,
        max_file_bytes=ctx.max_file_bytes,
    )



async def _plan_invalid(cmd: Command, ctx: RouteContext) -> Outcome:
    return ParseFailure(reason=cmd.reason or "unrecognized command")


_PLANS: dict[CommandType, Callable[[Command, RouteContext], Awaitable[Outcome]]] = {
    CommandType.LIST: _plan_list,
    CommandType.DELETE: _plan_delete,
    CommandType.MOVE: _plan_move,
    CommandType.RENAME: _plan_rename,
    CommandType.UPLOAD: _plan_upload,
    CommandType.SUMMARY: _plan_summary,
    CommandType.INVALID: _plan_invalid,
}

_missing_plans = set(CommandType) - set(_PLANS)
if _missing_plans:
    raise RuntimeError(f"No operation plan for: {sorted(t.value for t in _missing_plans)}")


def _positive_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value < 1:
        raise ValueError(f"{name} must be at least 1, got {value}")
    return value


def summary_limits_from_env() -> tuple[int, int]:
    """
    Read (batch_size, max_file_bytes) from SUMMARY_BATCH_SIZE and
    SUMMARY_MAX_FILE_BYTES.

    Raises ValueError for non-integer or non-positive values. Called at
    startup so a bad value stops the service instead of failing a message.
    """
    return (
        _positive_int_env("SUMMARY_BATCH_SIZE", DEFAULT_BATCH_SIZE),
        _positive_int_env("SUMMARY_MAX_FILE_BYTES", DEFAULT_MAX_FILE_BYTES),
    )


def context_from_env(store, summarizer=None, media_loader: Optional[MediaLoader] = None) -> RouteContext:
    """Build a RouteContext with batch limits from SUMMARY_* env vars."""
    batch_size, max_file_bytes = summary_limits_from_env()
    return RouteContext(
        store=store,
        summarizer=summarizer,
        media_loader=media_loader,
        batch_size=batch_size,
        max_file_bytes=max_file_bytes,
    )


async def route(cmd: Command, ctx: RouteContext) -> Outcome:
    """
    Execute a command's operation plan and return its outcome.

    INVALID short-circuits to ParseFailure without touching the store.
    DriveError, SummarizerError and TransportError become RemoteFailure;
    anything else is logged with its traceback and also becomes a
    RemoteFailure, so every command still gets a reply.
    """
    plan = _PLANS[cmd.type]
    try:
        return await plan(cmd, ctx)
    except DriveError as e:
        logger.error(f"{cmd.type.value} stopped at Drive {e.operation}: {e.message}")
        return RemoteFailure(operation=e.operation, message=e.message)
    except SummarizerError as e:
        logger.error(f"{cmd.type.value} summarizer failure: {e}")
        return RemoteFailure(operation="summarize", message=str(e))
    except TransportError as e:
        logger.error(f"{cmd.type.value} could not fetch attachment: {e}")
        return RemoteFailure(operation="fetch attachment", message=str(e))
    except Exception as e:
        logger.exception(f"{cmd.type.value} failed unexpectedly")
        return RemoteFailure(operation=cmd.type.value.lower(), message=str(e))
