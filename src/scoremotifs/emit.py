"""
Result Emitter
==============

Writers for the three output protocols:

``{prefix}.motif_scores.txt``
    One line per sequence and motif: ``chrom, chromStart+1, chromEnd, id,
    motif`` followed by the comma-joined window scores.

``{prefix}.{motif}.wig``
    One fixedStep block per sequence, one file per motif.

``{prefix}.motif_predictions.bed``
    One line per predicted match, shared by all motifs.

All writes happen on the coordinating thread; workers only build
:class:`~scoremotifs.records.SequenceResult` values.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Iterator, List, Optional

import numpy as np

from scoremotifs.records import MatchPrediction, SequenceResult


@dataclass(frozen=True)
class OutputModes:
    """Which outputs are written, and how predictions are framed."""

    scores: bool = False
    wig: bool = False
    predictions: bool = False
    genomic_bed: bool = False


def format_score(value: float) -> str:
    return f"{value:.6f}"


def format_prediction_line(result: SequenceResult, match: MatchPrediction, genomic: bool = False) -> str:
    """Tab-delimited bed-like line for one match."""
    start, end = match.start, match.end
    if genomic:
        start += result.chrom_start
        end += result.chrom_start
    fields = [result.chrom, start, end, result.id, match.motif_name, match.strand, f"{match.score:.15g}"]
    return "\t".join(str(field) for field in fields)


def format_score_line(result: SequenceResult) -> str:
    """One text-mode score line for a sequence."""
    header = [result.chrom, result.chrom_start + 1, result.chrom_end, result.id, result.motif_name]
    scores = result.scores if result.scores is not None else np.empty(0)
    return "\t".join(str(field) for field in header) + "\t" + ",".join(format_score(s) for s in scores)


def format_wig_block(result: SequenceResult) -> str:
    """fixedStep header, name comment, one score per line and a blank separator line."""
    lines = [f"fixedStep chrom={result.chrom} start={result.chrom_start + 1} step=1"]
    lines.append(f"#name={result.id} {result.description}")
    if result.scores is not None:
        lines.extend(format_score(s) for s in result.scores)
    return "\n".join(lines) + "\n\n"


class ResultEmitter:
    """
    Owns the output files of a scoring run.

    Use as a context manager for the whole run and enter :meth:`motif` for
    each motif's sequence pass::

        with ResultEmitter("out/run", OutputModes(predictions=True)) as emitter:
            for motif in store:
                with emitter.motif(motif.name):
                    for result in dispatch(...):
                        emitter.emit(result)
    """

    def __init__(self, prefix: str | Path, modes: OutputModes):
        self.prefix = str(prefix)
        self.modes = modes
        self.paths: List[Path] = []
        self.n_predictions = 0
        self.n_sequences = 0
        self.n_failed = 0
        self._scores_f: Optional[IO[str]] = None
        self._pred_f: Optional[IO[str]] = None
        self._wig_f: Optional[IO[str]] = None

    @property
    def scores_path(self) -> Path:
        return Path(f"{self.prefix}.motif_scores.txt")

    @property
    def predictions_path(self) -> Path:
        return Path(f"{self.prefix}.motif_predictions.bed")

    def wig_path(self, motif_name: str) -> Path:
        return Path(f"{self.prefix}.{motif_name}.wig")

    def _open(self, path: Path) -> IO[str]:
        path.parent.mkdir(parents=True, exist_ok=True)
        self.paths.append(path)
        return open(path, "w")

    def open(self) -> "ResultEmitter":
        if self.modes.scores and not self.modes.wig:
            self._scores_f = self._open(self.scores_path)
        if self.modes.predictions:
            self._pred_f = self._open(self.predictions_path)
        return self

    def close(self) -> None:
        for handle in (self._wig_f, self._scores_f, self._pred_f):
            if handle is not None:
                handle.close()
        self._wig_f = self._scores_f = self._pred_f = None

    def __enter__(self) -> "ResultEmitter":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def motif(self, motif_name: str) -> Iterator["ResultEmitter"]:
        """Keep the motif's wig file open for the duration of its pass."""
        if self.modes.scores and self.modes.wig:
            self._wig_f = self._open(self.wig_path(motif_name))
        try:
            yield self
        finally:
            if self._wig_f is not None:
                self._wig_f.close()
                self._wig_f = None

    def emit(self, result: SequenceResult) -> None:
        """Write one per-sequence result to every configured output."""
        if result.failed:
            self.n_failed += 1
            return
        self.n_sequences += 1

        if self.modes.predictions and self._pred_f is not None:
            for match in result.predictions:
                self._pred_f.write(format_prediction_line(result, match, self.modes.genomic_bed) + "\n")
            self.n_predictions += len(result.predictions)

        if self.modes.scores:
            if self.modes.wig:
                if self._wig_f is None:
                    raise RuntimeError("emit() in wig mode must be called inside ResultEmitter.motif()")
                self._wig_f.write(format_wig_block(result))
            elif self._scores_f is not None:
                self._scores_f.write(format_score_line(result) + "\n")

        logger = logging.getLogger(__name__)
        logger.debug(f"Wrote {result.id} ({result.n_windows} windows, {len(result.predictions)} matches)")
