"""
Batched multi-document summarization.

Documents are processed in fixed-size batches. Batches run one after another;
inside a batch every document is downloaded and summarized concurrently on a
worker thread, and the batch is joined before the next one starts, so at most
batch_size documents are in flight at any time.

Each document's result or failure is stored at its original position, so the
final order always matches the folder listing, never completion order.
"""

import asyncio
import logging
from typing import Optional, Sequence, Union

from app.models.drive import DriveEntry
from app.models.outcome import (
    FailedDocument,
    PartialFailure,
    Success,
    SummaryItem,
    SummaryResult,
)
from app.services.drive import DriveError
from app.services.summarizer import SummarizerError, UnsupportedDocumentError, is_supported

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DEFAULT_MAX_FILE_BYTES = 10 * 1024 * 1024


def _summarize_one(
    entry: DriveEntry,
    store,
    summarizer,
    max_file_bytes: int,
) -> tuple[Optional[str], Optional[str]]:
    """
    Download and summarize a single document.

    Returns (bullet, None) on success or (None, reason) on a per-document
    failure. Unexpected exceptions propagate.
    """
    if not is_supported(entry.mime_type):
        return None, f"unsupported file type {entry.mime_type or 'unknown'}"
    if entry.size is not None and entry.size > max_file_bytes:
        return None, f"file too large ({entry.size} bytes)"

    try:
        content = store.download_content(entry.id, entry.mime_type)
        return summarizer.summarize_document(content, entry.mime_type), None
    except UnsupportedDocumentError as e:
        return None, str(e)
    except (DriveError, SummarizerError) as e:
        logger.warning(f"Could not summarize '{entry.name}' ({entry.id}): {e}")
        return None, str(e)


def _batches(items: Sequence, size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


async def summarize_files(
    files: Sequence[DriveEntry],
    store,
    summarizer,
    batch_size: int = DEFAULT_BATCH_SIZE,
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
) -> Union[Success, PartialFailure]:
    """
    Summarize documents in listing order.

    Args:
        files: Documents to summarize, in the order they were listed
        store: Remote store client used to download each document
        summarizer: Object with summarize_document(content, mime_hint)
        batch_size: Maximum number of documents in flight at once
        max_file_bytes: Larger documents are skipped as failures

    Returns:
        Success(SummaryResult) when every document was summarized (including
        the empty case), otherwise PartialFailure listing both sides.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    results: list[tuple[Optional[str], Optional[str]]] = []
    for batch_number, batch in enumerate(_batches(list(files), batch_size), start=1):
        logger.info(f"Summarizing batch {batch_number} ({len(batch)} documents)")
        batch_results = await asyncio.gather(*(
            asyncio.to_thread(_summarize_one, entry, store, summarizer, max_file_bytes)
            for entry in batch
        ), return_exceptions=True)
        # Every worker in the batch has finished before an error surfaces
        for result in batch_results:
            if isinstance(result, BaseException):
                raise result
        results.extend(batch_results)

    succeeded: list[SummaryItem] = []
    failed: list[FailedDocument] = []
    for entry, (bullet, reason) in zip(files, results):
        if bullet is not None:
            succeeded.append(SummaryItem(file_name=entry.name, bullet_summary=bullet))
        else:
            failed.append(FailedDocument(file_name=entry.name, reason=reason or "unknown error"))

    if failed:
        return PartialFailure(succeeded=succeeded, failed=failed)
    return Success(payload=SummaryResult(items=succeeded))
