"""
Batch Runner
Continue-on-error execution of a per-item analysis step
"""

import logging
import traceback
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class BatchFailure:
    item: str
    kind: str
    message: str

    def __str__(self):
        return f"{self.item}: {self.kind}: {self.message}"


@dataclass
class BatchResult:
    """Outcome of a batch run, ordered by input position"""
    results: Dict[str, Any] = field(default_factory=dict)
    failures: List[BatchFailure] = field(default_factory=list)
    interrupted: bool = False

    @property
    def succeeded(self):
        return list(self.results)

    @property
    def failed(self):
        return [f.item for f in self.failures]

    def summary(self):
        text = f"{len(self.results)} succeeded, {len(self.failures)} failed"
        if self.interrupted:
            text += " (interrupted, partial results)"
        return text

    def raise_if_all_failed(self):
        if self.failures and not self.results:
            first = self.failures[0]
            raise RuntimeError(f"All {len(self.failures)} items failed; first failure: {first}")


def _record_failure(item, exc, label):
    failure = BatchFailure(str(item), type(exc).__name__, str(exc))
    logger.error(f"{label} failed for {item} [{failure.kind}]: {failure.message}")
    logger.debug(traceback.format_exc())
    return failure


def run_batch(items, func: Callable[[str], Any], n_workers: Optional[int] = 1,
              label='Processing') -> BatchResult:
    """
    Apply `func` to every item, collecting results and failures.

    A failing item is logged and recorded, and the batch moves on. With more than
    one worker the items run on a thread pool; results are re-ordered by input
    position once collected. A KeyboardInterrupt stops the batch and returns what
    was finished so far. Items with the same name run once, at their first position.
    """
    first_seen = {}
    repeated = []
    for item in items:
        key = str(item)
        if key in first_seen:
            if key not in repeated:
                repeated.append(key)
        else:
            first_seen[key] = item
    if repeated:
        logger.warning(f"{label}: repeated items run once: {', '.join(repeated)}")
    items = list(first_seen.values())
    outcomes = {}
    interrupted = False

    if not n_workers or n_workers <= 1:
        try:
            for idx, item in enumerate(items):
                logger.info(f"{label} {item} ({idx + 1}/{len(items)})")
                try:
                    outcomes[idx] = (True, func(item))
                except Exception as e:
                    outcomes[idx] = (False, _record_failure(item, e, label))
        except KeyboardInterrupt:
            interrupted = True
    else:
        executor = ThreadPoolExecutor(max_workers=n_workers)
        futures = {executor.submit(func, item): idx for idx, item in enumerate(items)}
        try:
            for future in as_completed(futures):
                idx = futures[future]
                item = items[idx]
                try:
                    outcomes[idx] = (True, future.result())
                    logger.info(f"{label} {item} done")
                except Exception as e:
                    outcomes[idx] = (False, _record_failure(item, e, label))
        except KeyboardInterrupt:
            interrupted = True
            for future in futures:
                future.cancel()
        finally:
            executor.shutdown(wait=not interrupted)

    batch = BatchResult(interrupted=interrupted)
    for idx in sorted(outcomes):
        ok, value = outcomes[idx]
        if ok:
            batch.results[str(items[idx])] = value
        else:
            batch.failures.append(value)

    if interrupted:
        logger.warning(f"{label} interrupted after {len(outcomes)} of {len(items)} items")
    if batch.failures:
        logger.warning(f"{label}: {batch.summary()}; failed items: {', '.join(batch.failed)}")
    else:
        logger.info(f"{label}: {batch.summary()}")
    return batch
