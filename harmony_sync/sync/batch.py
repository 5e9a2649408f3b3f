"""
Batched execution of remote operations.

Remote catalogs rate-limit aggressively, so bulk work is never fired all
at once. run_batches() splits the input into fixed-size chunks:

    chunk 1 ──(concurrent)──> done ── sleep(delay) ──> chunk 2 ... chunk N

    - Chunks run strictly one after another
    - Items inside a chunk run concurrently (at most batch_size at a time)
    - The delay is only inserted BETWEEN chunks
    - A failing item becomes a failure TaskOutcome; it never aborts its
      siblings or the following chunks

fetch_all_pages() follows a cursor-based listing until the catalog stops
returning a next cursor, pausing between pages. A failing page ends the
listing early and the items gathered so far are returned.

Usage:
    outcomes = run_batches(tracks, batch_size=5, delay=1.0, worker=resolver.resolve_track)
    report = BatchReport.from_outcomes(outcomes)
"""

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Generic, Sequence, TypeVar

from harmony_sync.catalogs.base import Page
from harmony_sync.core.exceptions import CatalogError
from harmony_sync.core.logger import get_logger


logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_PAGE_DELAY = 0.5

# Upper bound on pages for one listing (100 items per page -> 1M items)
MAX_PAGES = 10_000


@dataclass(frozen=True)
class TaskOutcome(Generic[T, R]):
    """
    Result of running the worker on one item.

    Exactly one of value/error is meaningful: ok is True when the worker
    returned normally (its return value may itself be None, e.g. "no match").

    Attributes:
        item: The input item.
        value: The worker's return value (None on failure).
        error: The exception raised by the worker (None on success).
    """

    item: T
    value: R | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, item: T, value: R) -> "TaskOutcome[T, R]":
        return cls(item=item, value=value)

    @classmethod
    def failure(cls, item: T, error: BaseException) -> "TaskOutcome[T, R]":
        return cls(item=item, error=error)


@dataclass(frozen=True)
class BatchReport(Generic[T, R]):
    """
    Final summary of one run_batches() call.

    Attributes:
        succeeded: Successful outcomes, in input order.
        failed: Items whose worker raised, in input order.
        total_requested: Number of input items.
    """

    succeeded: tuple[TaskOutcome[T, R], ...]
    failed: tuple[T, ...]
    total_requested: int

    @classmethod
    def from_outcomes(cls, outcomes: Sequence[TaskOutcome[T, R]]) -> "BatchReport[T, R]":
        return cls(
            succeeded=tuple(outcome for outcome in outcomes if outcome.ok),
            failed=tuple(outcome.item for outcome in outcomes if not outcome.ok),
            total_requested=len(outcomes),
        )

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failed)


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Split items into consecutive chunks of at most `size` elements."""
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    return [list(items[start:start + size]) for start in range(0, len(items), size)]


def _run_one(worker: Callable[[T], R], item: T) -> TaskOutcome[T, R]:
    try:
        return TaskOutcome.success(item, worker(item))
    except Exception as e:
        logger.debug(f"Batch item failed: {item!r}: {e}")
        return TaskOutcome.failure(item, e)


def run_batches(
    items: Sequence[T],
    batch_size: int,
    delay: float,
    worker: Callable[[T], R],
    sleep: Callable[[float], None] = time.sleep,
    on_outcome: Callable[[TaskOutcome[T, R]], None] | None = None
) -> list[TaskOutcome[T, R]]:
    """
    Run `worker` over `items` in delay-spaced concurrent chunks.

    Args:
        items: Input items; order is preserved in the output.
        batch_size: Maximum items per chunk (and concurrent workers).
        delay: Seconds to wait between consecutive chunks.
        worker: Function applied to each item. Exceptions are captured.
        sleep: Sleep function (injected by tests).
        on_outcome: Optional callback invoked on the calling thread as each
                    item finishes (completion order), e.g. to advance a
                    progress bar.

    Returns:
        One TaskOutcome per input item, in input order.

    Raises:
        ValueError: If batch_size is not positive.
    """
    chunks = chunked(items, batch_size)
    outcomes: list[TaskOutcome[T, R]] = []

    for index, chunk in enumerate(chunks):
        if index > 0 and delay > 0:
            sleep(delay)

        logger.debug(f"Processing chunk {index + 1}/{len(chunks)} ({len(chunk)} items)")

        chunk_outcomes: list[TaskOutcome[T, R] | None] = [None] * len(chunk)
        with ThreadPoolExecutor(max_workers=len(chunk)) as executor:
            future_to_position = {
                executor.submit(_run_one, worker, item): position
                for position, item in enumerate(chunk)
            }
            for future in as_completed(future_to_position):
                outcome = future.result()
                chunk_outcomes[future_to_position[future]] = outcome
                if on_outcome is not None:
                    on_outcome(outcome)

        outcomes.extend(chunk_outcomes)

    return outcomes


def fetch_all_pages(
    fetch_page: Callable[[str | None], Page[T]],
    initial_cursor: str | None = None,
    delay: float = DEFAULT_PAGE_DELAY,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "listing"
) -> list[T]:
    """
    Accumulate every item of a cursor-paginated listing.

    Args:
        fetch_page: Called with the current cursor (None for the first page).
        initial_cursor: Cursor to start from.
        delay: Seconds to wait before requesting each following page.
        sleep: Sleep function (injected by tests).
        description: Label for log messages.

    Returns:
        All items in page order. Partial when a page fetch failed.

    Raises:
        CatalogError: Only when the client was never connected. Remote
                      errors, 401/403 included, truncate the result.
    """
    items: list[T] = []
    cursor = initial_cursor
    seen_cursors: set[str] = set()

    for page_number in range(1, MAX_PAGES + 1):
        try:
            page = fetch_page(cursor)
        except Exception as e:
            if isinstance(e, CatalogError) and e.is_contract_violation:
                raise
            logger.warning(
                f"Stopped paging {description} at page {page_number}: {e} "
                f"({len(items)} items kept)"
            )
            return items

        items.extend(page.items)

        next_cursor = page.next_cursor
        if not next_cursor:
            return items
        if next_cursor in seen_cursors or next_cursor == cursor:
            logger.warning(f"Repeated cursor while paging {description}; stopping")
            return items

        if cursor is not None:
            seen_cursors.add(cursor)
        cursor = next_cursor

        if delay > 0:
            sleep(delay)

    logger.warning(f"Stopped paging {description} after {MAX_PAGES} pages")
    return items
