"""
Sequence records and per-sequence scoring results.

A :class:`SequenceRecord` is what the sequence source yields; a
:class:`SequenceResult` is what a worker hands back to the emitter.  Both are
frozen so that a result cannot be mutated once it leaves the worker.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from dataclasses import field as dc_field
from typing import List, Literal, NamedTuple, Optional

import numpy as np

Strand = Literal["+", "-"]

_FIELD_SPLIT = re.compile(r"\W+")


class Coordinates(NamedTuple):
    """Genomic frame of a sequence record."""

    chrom: str
    chrom_start: int
    chrom_end: int


def parse_coordinates(sequence_id: str, description: str, length: int) -> Coordinates:
    """
    Infer chromosome, start and end from a FASTA description.

    The description is split on runs of non-word characters, so both
    ``"x chr1 100 200"`` and ``"range=chr1:100-200 5'pad=0"`` give
    ``chr1``, 100, 200 from fields 1-3.  When the fields are missing or the
    start/end are not integers, the record is taken to span a whole
    chromosome named after its id.
    """
    fields = _FIELD_SPLIT.split(description.strip()) if description else []
    if len(fields) >= 4 and fields[1]:
        try:
            return Coordinates(fields[1], int(fields[2]), int(fields[3]))
        except ValueError:
            pass

    logger = logging.getLogger(__name__)
    logger.debug(f"No coordinate fields for {sequence_id}, using whole-sequence coordinates")
    return Coordinates(sequence_id, 0, length)


@dataclass(frozen=True)
class SequenceRecord:
    """A single input sequence.

    Attributes
    ----------
    id : str
        First word of the FASTA header.
    description : str
        Remainder of the header, possibly encoding chrom/start/end.
    sequence : str
        Raw nucleotide string.
    """

    id: str
    description: str
    sequence: str

    def __len__(self) -> int:
        return len(self.sequence)

    @property
    def coordinates(self) -> Coordinates:
        return parse_coordinates(self.id, self.description, len(self.sequence))


@dataclass(frozen=True)
class MatchPrediction:
    """A window whose strand score exceeded the threshold.

    ``start`` and ``end`` are relative to the sequence record; the emitter
    shifts them by ``chrom_start`` in genomic mode.
    """

    motif_name: str
    strand: Strand
    start: int
    end: int
    score: float


@dataclass(frozen=True)
class SequenceResult:
    """Everything one worker produced for one sequence and one motif."""

    id: str
    description: str
    motif_name: str
    chrom: str
    chrom_start: int
    chrom_end: int
    scores: Optional[np.ndarray] = dc_field(default=None, compare=False)
    predictions: List[MatchPrediction] = dc_field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def n_windows(self) -> int:
        return 0 if self.scores is None else int(self.scores.size)

    @classmethod
    def from_record(cls, record: SequenceRecord, motif_name: str, **kwargs) -> "SequenceResult":
        """Build a result carrying the identity fields of ``record``."""
        chrom, chrom_start, chrom_end = record.coordinates
        return cls(
            id=record.id,
            description=record.description,
            motif_name=motif_name,
            chrom=chrom,
            chrom_start=chrom_start,
            chrom_end=chrom_end,
            **kwargs,
        )
