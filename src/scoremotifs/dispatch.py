"""
Sequence Dispatcher
===================

Streams sequences through the window scorer with a bounded worker pool.

With one worker the sequences are scored synchronously in input order.  With
two or more, a :class:`joblib.Parallel` pool scores them concurrently and
yields results as they complete, so the output order follows completion order
rather than input order.  Pass ``preserve_order=True`` when callers need input
order.

At most ``worker_count`` sequences are pulled from the source and not yet
taken by the consumer at any time.  A slot is only refilled after the
consumer has taken its result, so a slow emitter throttles the workers and
peak memory stays at ``worker_count`` sequences and their results.

On the ``threading`` backend the workers pull records themselves through a
:class:`_SlotFeeder`.  Process workers cannot share the stream, so on ``loky``
the records are scored in rounds of ``worker_count``, each round fully
consumed before the next is read.

Results are only ever handed back to the coordinating thread; workers never
write output themselves.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Sized
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Literal, Optional, Tuple

from joblib import Parallel, delayed

from scoremotifs.exceptions import DispatchError, SequenceScoringFailure
from scoremotifs.functions import score_sequence
from scoremotifs.models import BackgroundModel, PositionWeightMatrix
from scoremotifs.records import SequenceRecord, SequenceResult

Backend = Literal["threading", "loky"]


@dataclass(frozen=True)
class ScanOptions:
    """What each scoring task computes."""

    threshold: float = 0.0
    scores: bool = True
    predictions: bool = False


def score_task(
    record: SequenceRecord, motif: PositionWeightMatrix, background: BackgroundModel, options: ScanOptions
) -> SequenceResult:
    """Score one sequence; a scoring failure becomes a failed result instead of an exception."""
    try:
        return score_sequence(
            record,
            motif,
            background,
            threshold=options.threshold,
            scores=options.scores,
            predictions=options.predictions,
        )
    except SequenceScoringFailure as e:
        return SequenceResult.from_record(record, motif.name, error=e.reason)


def count_sequences(source: Iterable[SequenceRecord]) -> int:
    """Count the records of a sized or restartable source."""
    if isinstance(source, Sized):
        return len(source)
    if iter(source) is source:
        raise ValueError(
            "Multi-worker dispatch needs a sized or restartable sequence source; got a one-shot iterator"
        )
    return sum(1 for _ in source)


def dispatch(
    source: Iterable[SequenceRecord],
    motif: PositionWeightMatrix,
    background: BackgroundModel,
    worker_count: int = 1,
    options: ScanOptions | None = None,
    backend: Backend = "threading",
    preserve_order: bool = False,
) -> Iterator[SequenceResult]:
    """
    Score every sequence of ``source`` against ``motif``.

    Returns a lazy, single-pass iterator of :class:`SequenceResult`.  Failed
    sequences are yielded as results with ``error`` set and are logged; they
    do not stop the run.
    """
    if worker_count < 1:
        raise ValueError(f"worker_count must be >= 1, got {worker_count}")
    options = options or ScanOptions()

    if worker_count == 1:
        return _dispatch_serial(source, motif, background, options)
    return _dispatch_parallel(source, motif, background, worker_count, options, backend, preserve_order)


def _report(result: SequenceResult) -> SequenceResult:
    if result.failed:
        logger = logging.getLogger(__name__)
        logger.warning(f"Skipping sequence {result.id} for motif {result.motif_name}: {result.error}")
    return result


def _dispatch_serial(source, motif, background, options) -> Iterator[SequenceResult]:
    for record in source:
        yield _report(score_task(record, motif, background, options))


class _SlotFeeder:
    """
    Shared, lock-protected view of the sequence stream for worker threads.

    A worker must acquire a slot before it pulls a record, and the slot is
    returned only when the consumer has taken that record's result.  Records
    are numbered in pull order so the coordinator can restore input order.
    """

    def __init__(self, source: Iterable[SequenceRecord], worker_count: int):
        self._records = iter(source)
        self._lock = threading.Lock()
        self._slots = threading.Semaphore(worker_count)
        self._closed = False
        self.pulled = 0

    def take(self) -> Optional[Tuple[int, SequenceRecord]]:
        """Block for a free slot, then pull the next record; ``None`` once exhausted or closed."""
        self._slots.acquire()
        with self._lock:
            try:
                record = None if self._closed else next(self._records, None)
            except BaseException:
                self._closed = True
                self._slots.release()
                raise
            if record is None:
                # wakes the next waiter, which will also find nothing
                self._slots.release()
                return None
            index = self.pulled
            self.pulled += 1
        return index, record

    def release(self) -> None:
        self._slots.release()

    def close(self) -> None:
        """Stop handing out records and wake every blocked worker."""
        with self._lock:
            self._closed = True
        self._slots.release()

    def has_more(self) -> bool:
        with self._lock:
            return next(self._records, None) is not None


def _slot_task(feeder: _SlotFeeder, motif, background, options) -> Optional[Tuple[int, SequenceResult]]:
    taken = feeder.take()
    if taken is None:
        return None
    index, record = taken
    try:
        return index, score_task(record, motif, background, options)
    except BaseException:
        feeder.close()
        raise


def _dispatch_parallel(
    source, motif, background, worker_count, options, backend, preserve_order
) -> Iterator[SequenceResult]:
    logger = logging.getLogger(__name__)

    total = count_sequences(source)
    logger.debug(f"Dispatching {total} sequence(s) to {worker_count} workers ({backend})")

    if backend == "threading":
        yield from _dispatch_threads(source, motif, background, worker_count, options, preserve_order, total)
    else:
        yield from _dispatch_rounds(source, motif, background, worker_count, options, backend, preserve_order, total)


def _dispatch_threads(source, motif, background, worker_count, options, preserve_order, total):
    feeder = _SlotFeeder(source, worker_count)
    parallel = Parallel(
        n_jobs=worker_count,
        backend="threading",
        batch_size=1,
        pre_dispatch=worker_count,
        return_as="generator_unordered",
    )
    # one placeholder task per counted record; workers pull the records themselves
    tasks = (delayed(_slot_task)(feeder, motif, background, options) for _ in range(total))

    outputs = parallel(tasks)
    waiting: Dict[int, SequenceResult] = {}
    next_index = 0
    try:
        for taken in outputs:
            if taken is None:
                continue
            index, result = taken
            if not preserve_order:
                yield _report(result)
                feeder.release()
                continue
            waiting[index] = result
            while next_index in waiting:
                yield _report(waiting.pop(next_index))
                next_index += 1
                feeder.release()
    finally:
        feeder.close()
        outputs.close()

    if feeder.pulled != total or feeder.has_more():
        raise DispatchError(f"Counted {total} sequence(s) but the source yielded a different number")


def _dispatch_rounds(source, motif, background, worker_count, options, backend, preserve_order, total):
    records = iter(source)
    dispatched = 0

    with Parallel(
        n_jobs=worker_count,
        backend=backend,
        batch_size=1,
        return_as="generator" if preserve_order else "generator_unordered",
    ) as parallel:
        while True:
            batch = list(itertools.islice(records, worker_count))
            if not batch:
                break
            dispatched += len(batch)
            for result in parallel(delayed(score_task)(record, motif, background, options) for record in batch):
                yield _report(result)

    if dispatched != total:
        raise DispatchError(f"Counted {total} sequence(s) but dispatched {dispatched}")
