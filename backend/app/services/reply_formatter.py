"""
Reply formatter.

Pure mapping from (command, outcome) to the single chat message sent back to
the user. The template table covers every CommandType x OutcomeKind pair and
is checked at import time, so no handled message can end without a reply.
"""

from typing import Callable

from app.models.command import Command, CommandType
from app.models.drive import DriveEntry, EntryKind
from app.models.outcome import (
    NotFound,
    OutcomeKind,
    ParseFailure,
    PartialFailure,
    RemoteFailure,
    Success,
    SummaryItem,
)
from app.services.command_parser import USAGE

# Verb phrase used in generic failure messages
_ACTIONS = {
    CommandType.LIST: "list the folder",
    CommandType.DELETE: "delete the file",
    CommandType.MOVE: "move the file",
    CommandType.RENAME: "rename the file",
    CommandType.UPLOAD: "upload the file",
    CommandType.SUMMARY: "summarize the folder",
    CommandType.INVALID: "run the command",
}


def _entry_label(entry: DriveEntry) -> str:
    return f"{entry.name}/" if entry.kind is EntryKind.FOLDER else entry.name


def _bullets(items: list[SummaryItem]) -> str:
    return "\n\n".join(f"{item.file_name}\n{item.bullet_summary}" for item in items)


# ---------------------------------------------------------------------------
# Success templates
# ---------------------------------------------------------------------------

def _list_success(cmd: Command, outcome: Success) -> str:
    entries = outcome.payload
    if not entries:
        return f"No files found in folder '{cmd.arg1}'."
    lines = "\n".join(f"- {_entry_label(entry)}" for entry in entries)
    return f"Files in '{cmd.arg1}' ({len(entries)}):\n{lines}"


def _delete_success(cmd: Command, outcome: Success) -> str:
    return f"'{outcome.payload.name}' was moved to the trash from '{cmd.arg1}'."


def _move_success(cmd: Command, outcome: Success) -> str:
    return f"Moved '{outcome.payload.name}' from '{cmd.arg1}' to '{cmd.arg3}'."


def _rename_success(cmd: Command, outcome: Success) -> str:
    return f"Renamed '{cmd.arg2}' to '{outcome.payload.name}' in '{cmd.arg1}'."


def _upload_success(cmd: Command, outcome: Success) -> str:
    reply = f"Uploaded '{outcome.payload.name}' to '{cmd.arg1}'."
    if outcome.payload.web_view_link:
        reply += f"\n{outcome.payload.web_view_link}"
    return reply


def _summary_success(cmd: Command, outcome: Success) -> str:
    items = outcome.payload.items
    if not items:
        return f"No documents to summarize in folder '{cmd.arg1}'."
    return f"Summary of '{cmd.arg1}' ({len(items)} documents):\n\n{_bullets(items)}"


def _invalid_success(cmd: Command, outcome: Success) -> str:
    # INVALID never reaches a plan that can succeed
    return _parse_failure(cmd, ParseFailure(reason=cmd.reason or "unrecognized command"))


# ---------------------------------------------------------------------------
# Failure templates
# ---------------------------------------------------------------------------

def _not_found(cmd: Command, outcome: NotFound) -> str:
    if outcome.what == "folder":
        label = f"{outcome.role.capitalize()} folder" if outcome.role else "Folder"
        reply = f"{label} '{outcome.name}' not found."
    else:
        reply = f"File '{outcome.name}' not found in folder '{cmd.arg1}'."

    if cmd.type is CommandType.MOVE and outcome.role == "destination":
        reply += f" '{cmd.arg2}' was not moved."
    return reply


def _parse_failure(cmd: Command, outcome: ParseFailure) -> str:
    return (
        f"Could not understand command ({outcome.reason}), expected one of:\n"
        f"{USAGE}"
    )


def _summary_partial(cmd: Command, outcome: PartialFailure) -> str:
    failed = "\n".join(f"- {doc.file_name}: {doc.reason}" for doc in outcome.failed)
    if outcome.succeeded:
        head = (
            f"Summary of '{cmd.arg1}' ({len(outcome.succeeded)} of "
            f"{len(outcome.succeeded) + len(outcome.failed)} documents):\n\n"
            f"{_bullets(outcome.succeeded)}\n\n"
        )
    else:
        head = f"No documents in '{cmd.arg1}' could be summarized.\n\n"
    return f"{head}Could not summarize:\n{failed}"


def _generic_partial(cmd: Command, outcome: PartialFailure) -> str:
    failed = ", ".join(doc.file_name for doc in outcome.failed)
    return f"Could only partly {_ACTIONS[cmd.type]}. Failed: {failed or 'unknown'}."


def _remote_failure(cmd: Command, outcome: RemoteFailure) -> str:
    return (
        f"Something went wrong while trying to {_ACTIONS[cmd.type]} "
        f"({outcome.operation} failed). Please try again later."
    )


_SUCCESS_TEMPLATES = {
    CommandType.LIST: _list_success,
    CommandType.DELETE: _delete_success,
    CommandType.MOVE: _move_success,
    CommandType.RENAME: _rename_success,
    CommandType.UPLOAD: _upload_success,
    CommandType.SUMMARY: _summary_success,
    CommandType.INVALID: _invalid_success,
}

_TEMPLATES: dict[tuple[CommandType, OutcomeKind], Callable] = {}
for _type in CommandType:
    _TEMPLATES[(_type, OutcomeKind.SUCCESS)] = _SUCCESS_TEMPLATES[_type]
    _TEMPLATES[(_type, OutcomeKind.NOT_FOUND)] = _not_found
    _TEMPLATES[(_type, OutcomeKind.PARSE_FAILURE)] = _parse_failure
    _TEMPLATES[(_type, OutcomeKind.PARTIAL_FAILURE)] = (
        _summary_partial if _type is CommandType.SUMMARY else _generic_partial
    )
    _TEMPLATES[(_type, OutcomeKind.REMOTE_FAILURE)] = _remote_failure

_unmapped = {(t, k) for t in CommandType for k in OutcomeKind} - set(_TEMPLATES)
if _unmapped:
    raise RuntimeError(f"No reply template for: {sorted(_unmapped)}")


def format_reply(cmd: Command, outcome) -> str:
    """Render the reply text for a command's outcome. Never returns ''."""
    return _TEMPLATES[(cmd.type, outcome.kind)](cmd, outcome)
