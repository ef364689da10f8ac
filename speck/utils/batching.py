"""Run per-item work in bounded parallel batches."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, List, Sequence, TypeVar

from speck.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class BatchFailure:
    item: str
    error: str


def run_in_batches(
    func: Callable[[T], None], items: Sequence[T], batch_size: int = 10
) -> List[BatchFailure]:
    """Call `func` for every item, at most `batch_size` at a time.

    Each batch finishes before the next starts, which bounds the number of
    files open at once. Failures are collected per item rather than raised.

    Returns:
        One BatchFailure per item whose call raised OSError
    """
    failures: List[BatchFailure] = []
    if not items:
        return failures

    with ThreadPoolExecutor(max_workers=max(1, batch_size)) as executor:
        for start in range(0, len(items), batch_size):
            batch = items[start:start + batch_size]
            future_to_item = {executor.submit(func, item): item for item in batch}
            for future in as_completed(future_to_item):
                item = future_to_item[future]
                try:
                    future.result()
                except OSError as e:
                    logger.debug(f"Batch item {item} failed: {e}")
                    failures.append(BatchFailure(item=str(item), error=str(e)))
    return failures
