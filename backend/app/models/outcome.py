"""
Pydantic models for command outcomes.

Every handled message ends in exactly one of these. The reply formatter maps
each (command type, outcome kind) pair to a message.

  Success         command completed; payload depends on the command
  NotFound        a folder or file named in the command does not exist
  ParseFailure    the message could not be turned into an executable command
  PartialFailure  SUMMARY finished but some documents could not be summarized
  RemoteFailure   Drive, the summarizer or the chat transport raised an error
"""

from enum import Enum
from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, Field

from app.models.drive import DriveEntry, FileDescriptor


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    PARSE_FAILURE = "parse_failure"
    PARTIAL_FAILURE = "partial_failure"
    REMOTE_FAILURE = "remote_failure"


class SummaryItem(BaseModel):
    file_name: str
    bullet_summary: str


class FailedDocument(BaseModel):
    file_name: str
    reason: str


class SummaryResult(BaseModel):
    """Bullet summaries in folder listing order."""
    items: List[SummaryItem] = []


class Success(BaseModel):
    kind: Literal[OutcomeKind.SUCCESS] = OutcomeKind.SUCCESS
    # LIST -> list of entries; DELETE/MOVE/RENAME/UPLOAD -> descriptor;
    # SUMMARY -> SummaryResult
    payload: Union[SummaryResult, FileDescriptor, List[DriveEntry]]


class NotFound(BaseModel):
    kind: Literal[OutcomeKind.NOT_FOUND] = OutcomeKind.NOT_FOUND
    what: Literal["folder", "file"]
    name: str
    # Which role the missing entity played, e.g. "destination" for MOVE
    role: Optional[str] = None


class ParseFailure(BaseModel):
    kind: Literal[OutcomeKind.PARSE_FAILURE] = OutcomeKind.PARSE_FAILURE
    reason: str


class PartialFailure(BaseModel):
    kind: Literal[OutcomeKind.PARTIAL_FAILURE] = OutcomeKind.PARTIAL_FAILURE
    succeeded: List[SummaryItem] = []
    failed: List[FailedDocument] = []


class RemoteFailure(BaseModel):
    kind: Literal[OutcomeKind.REMOTE_FAILURE] = OutcomeKind.REMOTE_FAILURE
    operation: str
    message: str


Outcome = Annotated[
    Union[Success, NotFound, ParseFailure, PartialFailure, RemoteFailure],
    Field(discriminator="kind"),
]
