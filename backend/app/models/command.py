"""
Pydantic models for parsed chat commands.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel

from app.models.inbound_message import MediaRef


class CommandType(str, Enum):
    LIST = "LIST"
    DELETE = "DELETE"
    MOVE = "MOVE"
    RENAME = "RENAME"
    UPLOAD = "UPLOAD"
    SUMMARY = "SUMMARY"
    INVALID = "INVALID"


class Command(BaseModel):
    """
    A parsed command. Immutable once built.

    Argument slots by command:
      LIST     arg1=folder
      DELETE   arg1=folder, arg2=file
      MOVE     arg1=source folder, arg2=file, arg3=destination folder
      RENAME   arg1=folder, arg2=old file name, arg3=new file name
      UPLOAD   arg1=folder, arg2=new file name, media=attachment
      SUMMARY  arg1=folder
      INVALID  no arguments; reason says why parsing failed
    """
    model_config = {"frozen": True}

    type: CommandType
    arg1: Optional[str] = None
    arg2: Optional[str] = None
    arg3: Optional[str] = None
    media: Optional[MediaRef] = None
    reason: Optional[str] = None

    @classmethod
    def invalid(cls, reason: str) -> "Command":
        return cls(type=CommandType.INVALID, reason=reason)
