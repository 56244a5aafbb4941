"""
Motif scoring pipeline.

Motifs are processed strictly one at a time, in name order; each motif runs
its own full dispatch cycle over the sequence source and its results are
written as they arrive.
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, Iterable, Union

from scoremotifs.dispatch import Backend, ScanOptions, dispatch
from scoremotifs.emit import OutputModes, ResultEmitter
from scoremotifs.io import FastaFile
from scoremotifs.models import ModelStore
from scoremotifs.records import SequenceRecord

SequenceSource = Union[str, Path, Iterable[SequenceRecord]]


class Pipeline:
    """Scores every motif of a :class:`ModelStore` over one sequence source."""

    def __init__(
        self,
        store: ModelStore,
        modes: OutputModes,
        prefix: Union[str, Path] = "score_motifs",
        threshold: float = 0.0,
        workers: int = 1,
        backend: Backend = "threading",
        preserve_order: bool = False,
    ):
        self.logger = logging.getLogger(__name__)
        self.store = store
        self.modes = modes
        self.prefix = prefix
        self.options = ScanOptions(threshold=threshold, scores=modes.scores, predictions=modes.predictions)
        self.workers = workers
        self.backend = backend
        self.preserve_order = preserve_order

    def load_sequences(self, source: SequenceSource) -> Iterable[SequenceRecord]:
        """Wrap a FASTA path in a restartable source; pass other iterables through."""
        if isinstance(source, (str, Path)):
            return FastaFile(source)
        if iter(source) is source and len(self.store) > 1:
            raise ValueError("Scoring several motifs needs a restartable sequence source, not a one-shot iterator")
        return source

    def score_motif(self, motif_name: str, sequences: Iterable[SequenceRecord], emitter: ResultEmitter) -> int:
        """Run one dispatch cycle for ``motif_name``; returns the number of results emitted."""
        motif = self.store[motif_name]
        n_results = 0
        with emitter.motif(motif_name):
            for result in dispatch(
                sequences,
                motif,
                self.store.background,
                worker_count=self.workers,
                options=self.options,
                backend=self.backend,
                preserve_order=self.preserve_order,
            ):
                emitter.emit(result)
                n_results += 1
        return n_results

    def run(self, source: SequenceSource) -> Dict[str, Any]:
        """Score all motifs and return a run summary."""
        start = time.time()
        sequences = self.load_sequences(source)

        with ResultEmitter(self.prefix, self.modes) as emitter:
            for name in self.store.names:
                self.logger.info(f"Scoring sequences for motif {name}...")
                n_results = self.score_motif(name, sequences, emitter)
                self.logger.debug(f"Motif {name}: {n_results} result(s)")

        elapsed = time.time() - start
        self.logger.info(f"Elapsed time : {elapsed:.1f} seconds.")

        return {
            "motifs": self.store.names,
            "sequences_scored": emitter.n_sequences,
            "sequences_failed": emitter.n_failed,
            "predictions": emitter.n_predictions,
            "outputs": [str(path) for path in emitter.paths],
            "elapsed_seconds": round(elapsed, 3),
        }


def run_pipeline(
    store: ModelStore,
    sequences: SequenceSource,
    modes: OutputModes,
    prefix: Union[str, Path] = "score_motifs",
    threshold: float = 0.0,
    workers: int = 1,
    backend: Backend = "threading",
    preserve_order: bool = False,
) -> Dict[str, Any]:
    """
    Module-level function to run the pipeline.

    Args:
        store: Motifs and background model
        sequences: FASTA path or restartable iterable of records
        modes: Which outputs to write
        prefix: Output file prefix (may include a directory)
        threshold: Score threshold for predictions
        workers: Worker pool size
        backend: joblib backend for the pool
        preserve_order: Emit results in input order

    Returns:
        Run summary
    """
    pipeline = Pipeline(
        store,
        modes,
        prefix=prefix,
        threshold=threshold,
        workers=workers,
        backend=backend,
        preserve_order=preserve_order,
    )
    return pipeline.run(sequences)
