"""
Model Store
===========

Immutable containers for motif models and the nucleotide background.

Matrices are converted to natural-log space exactly once, when the store is
built; the scorer never sees raw probabilities.  Both containers are frozen
dataclasses holding read-only arrays so they can be shared between worker
threads without locking.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field as dc_field
from typing import Dict, Iterator, Mapping, Sequence, Union

import numpy as np

from scoremotifs.exceptions import ModelArithmeticError
from scoremotifs.io import MotifSource, read_meme

NUCLEOTIDES = "ACGT"

DEFAULT_BACKGROUND_FREQUENCIES = {"A": 0.3, "C": 0.2, "G": 0.2, "T": 0.3}

MatrixLike = Union[np.ndarray, Sequence[Sequence[float]]]


def _frozen(array: np.ndarray) -> np.ndarray:
    array = np.array(array, dtype=np.float64)
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class PositionWeightMatrix:
    """Log-space motif model.

    Attributes
    ----------
    name : str
        Motif name from the MEME ``MOTIF`` line.
    matrix : np.ndarray
        ``(L, 4)`` natural-log probabilities, columns ordered A, C, G, T.
    """

    name: str
    matrix: np.ndarray = dc_field(hash=False, compare=False)

    def __post_init__(self):
        matrix = np.asarray(self.matrix, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[1] != 4 or matrix.shape[0] == 0:
            raise ValueError(f"Motif {self.name!r} must be a non-empty (L, 4) matrix, got shape {matrix.shape}")
        object.__setattr__(self, "matrix", _frozen(matrix))

    @property
    def length(self) -> int:
        """Number of matrix rows."""
        return self.matrix.shape[0]


@dataclass(frozen=True, eq=False)
class BackgroundModel:
    """Single-order background, stored as log-frequencies indexed A, C, G, T."""

    log_frequencies: np.ndarray

    def __post_init__(self):
        values = np.asarray(self.log_frequencies, dtype=np.float64)
        if values.shape != (4,):
            raise ValueError(f"Background model needs 4 log-frequencies, got shape {values.shape}")
        object.__setattr__(self, "log_frequencies", _frozen(values))

    def __getitem__(self, nucleotide: str) -> float:
        return float(self.log_frequencies[NUCLEOTIDES.index(nucleotide.upper())])

    @classmethod
    def from_frequencies(cls, frequencies: Mapping[str, float]) -> "BackgroundModel":
        """Build a background from a nucleotide -> probability mapping."""
        missing = [nuc for nuc in NUCLEOTIDES if nuc not in frequencies]
        if missing:
            raise ValueError(f"Background frequencies are missing {missing}")
        log_freqs = to_log({nuc: frequencies[nuc] for nuc in NUCLEOTIDES})
        return cls(np.array([log_freqs[nuc] for nuc in NUCLEOTIDES]))


def default_background() -> BackgroundModel:
    """Approximate average genomic nucleotide frequencies."""
    return BackgroundModel.from_frequencies(DEFAULT_BACKGROUND_FREQUENCIES)


def apply_pseudocount(pwm: MatrixLike, pseudocount: float) -> np.ndarray:
    """Add ``pseudocount`` to every cell and renormalize each row to sum to 1."""
    matrix = np.array(pwm, dtype=np.float64) + pseudocount
    row_sums = matrix.sum(axis=1, keepdims=True)
    if np.any(row_sums == 0):
        rows = np.where(row_sums[:, 0] == 0)[0].tolist()
        raise ModelArithmeticError(f"Row sum is zero after adding pseudocount {pseudocount} (rows {rows})")
    return matrix / row_sums


def to_log(model: Union[MatrixLike, Mapping[str, float]]):
    """
    Element-wise natural log of a probability matrix or a nucleotide mapping.

    Non-positive input is a configuration error rather than a silent ``-inf``.
    """
    if isinstance(model, Mapping):
        bad = {key: value for key, value in model.items() if not value > 0}
        if bad:
            raise ModelArithmeticError(f"Cannot take the log of non-positive background values: {bad}")
        return {key: float(np.log(value)) for key, value in model.items()}

    matrix = np.array(model, dtype=np.float64)
    if not np.all(matrix > 0):
        raise ModelArithmeticError("Cannot take the log of non-positive matrix entries")
    return np.log(matrix)


def build_pwm(name: str, probabilities: MatrixLike, pseudocount: float = 0.0) -> PositionWeightMatrix:
    """Smooth (optionally) and log-transform one probability matrix."""
    matrix = np.array(probabilities, dtype=np.float64)
    if pseudocount:
        matrix = apply_pseudocount(matrix, pseudocount)
    try:
        return PositionWeightMatrix(name=name, matrix=to_log(matrix))
    except ModelArithmeticError as e:
        raise ModelArithmeticError(f"Motif {name!r}: {e}") from e


def load_motifs(source: MotifSource, pseudocount: float = 0.0) -> Dict[str, PositionWeightMatrix]:
    """Read a MEME file and return its motifs in log space."""
    raw = read_meme(source)
    return {name: build_pwm(name, matrix, pseudocount) for name, matrix in raw.items()}


class ModelStore:
    """Motifs and background shared read-only by every scoring task."""

    def __init__(self, motifs: Mapping[str, PositionWeightMatrix], background: BackgroundModel | None = None):
        self._motifs = {name: motifs[name] for name in sorted(motifs)}
        self.background = background if background is not None else default_background()

    @classmethod
    def from_meme(
        cls, source: MotifSource, pseudocount: float = 0.0, background: BackgroundModel | None = None
    ) -> "ModelStore":
        logger = logging.getLogger(__name__)
        logger.info("Loading motif models...")
        motifs = load_motifs(source, pseudocount)
        logger.info(f"Loaded {len(motifs)} motif(s)")
        return cls(motifs, background)

    @classmethod
    def from_matrices(
        cls,
        matrices: Mapping[str, MatrixLike],
        pseudocount: float = 0.0,
        background: BackgroundModel | None = None,
    ) -> "ModelStore":
        """Build from already-parsed probability rows."""
        motifs = {name: build_pwm(name, rows, pseudocount) for name, rows in matrices.items()}
        return cls(motifs, background)

    @property
    def names(self) -> list[str]:
        return list(self._motifs)

    def __getitem__(self, name: str) -> PositionWeightMatrix:
        return self._motifs[name]

    def __iter__(self) -> Iterator[PositionWeightMatrix]:
        return iter(self._motifs.values())

    def __len__(self) -> int:
        return len(self._motifs)
