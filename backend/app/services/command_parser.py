"""
Chat command parser.

Turns the raw text of a chat message into a Command. The grammar is:

  LIST    /<folder>
  DELETE  /<folder>/<file>
  MOVE    /<source folder>/<file>/<destination folder>
  RENAME  /<folder>/<old file name> <new file name...>
  UPLOAD  /<folder>/<new file name>        (file attached to the message)
  SUMMARY /<folder>

The command word is case-insensitive. Whitespace around the whole message is
ignored; after that, folder and file names are taken verbatim, including
internal and segment-edge spaces. parse() never raises: anything it cannot
make sense of becomes an INVALID command carrying the reason.
"""

import re
from typing import Optional

from app.models.command import Command, CommandType
from app.models.inbound_message import MediaRef

# Commands whose arguments are plain slash-separated segments
_SEGMENT_COMMANDS = {
    CommandType.LIST,
    CommandType.DELETE,
    CommandType.MOVE,
    CommandType.SUMMARY,
    CommandType.UPLOAD,
}

_MAX_SEGMENTS = 3

USAGE = (
    "LIST /<folder>\n"
    "DELETE /<folder>/<file>\n"
    "MOVE /<folder>/<file>/<destination folder>\n"
    "RENAME /<folder>/<file> <new name>\n"
    "UPLOAD /<folder>/<new file name> (with a file attached)\n"
    "SUMMARY /<folder>"
)


def _split_segments(remainder: str) -> list[Optional[str]]:
    """
    Split argument text on '/' into exactly three positional slots.

    One leading empty segment (from a leading slash) is dropped. Empty or
    missing segments become None; segments past the third are ignored.
    """
    segments = remainder.split("/")
    if segments and segments[0] == "":
        segments = segments[1:]

    slots: list[Optional[str]] = []
    for i in range(_MAX_SEGMENTS):
        value = segments[i] if i < len(segments) else ""
        slots.append(value if value != "" else None)
    return slots


def _parse_rename(remainder: str) -> Command:
    if remainder.startswith("/"):
        remainder = remainder[1:]

    folder, sep, rest = remainder.partition("/")
    if not folder:
        return Command.invalid("missing folder")
    if not sep or not rest:
        return Command.invalid("missing file name")

    # Split on the first whitespace only: the new name may contain spaces
    parts = re.split(r"\s", rest, maxsplit=1)
    old_name = parts[0]
    new_name = parts[1] if len(parts) > 1 else ""
    if not old_name:
        return Command.invalid("missing file name")
    if not new_name:
        return Command.invalid("missing new name")

    return Command(
        type=CommandType.RENAME,
        arg1=folder,
        arg2=old_name,
        arg3=new_name,
    )


def parse(raw_text: str, attached_media: Optional[MediaRef] = None) -> Command:
    """
    Parse message text (plus an optional attachment) into a Command.

    Args:
        raw_text: The message text as typed by the user
        attached_media: Attachment reference, only used by UPLOAD

    Returns:
        A Command. Unknown command words, missing folders and malformed
        RENAME arguments yield CommandType.INVALID with a reason.
    """
    text = (raw_text or "").strip()
    if not text:
        return Command.invalid("empty message")

    parts = text.split(None, 1)
    token = parts[0].upper()
    # text is already stripped at both ends
    remainder = parts[1].lstrip() if len(parts) > 1 else ""

    try:
        command_type = CommandType(token)
    except ValueError:
        return Command.invalid(f"unknown command {parts[0]!r}")
    if command_type is CommandType.INVALID:
        return Command.invalid(f"unknown command {parts[0]!r}")

    if command_type is CommandType.RENAME:
        return _parse_rename(remainder)

    if command_type in _SEGMENT_COMMANDS:
        arg1, arg2, arg3 = _split_segments(remainder)
        if arg1 is None:
            return Command.invalid("missing folder")

        if command_type is CommandType.UPLOAD:
            # Only folder and file name are meaningful for UPLOAD
            return Command(
                type=command_type,
                arg1=arg1,
                arg2=arg2,
                media=attached_media,
            )
        return Command(type=command_type, arg1=arg1, arg2=arg2, arg3=arg3)

    return Command.invalid(f"unknown command {parts[0]!r}")
