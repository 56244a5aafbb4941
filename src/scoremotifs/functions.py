"""
Window Scorer
=============

Log-odds scoring of a sequence against one motif on both strands.

For a motif of ``L`` rows, window ``offset`` (1-based, ``1 <= offset <=
len(seq) - L + 1``) covers the ``L`` bases starting at that position.  Each
resolved base adds ``motif[j][base]`` to the motif sum and ``background[base]``
to the background sum; unresolved bases (``N`` and the other IUPAC ambiguity
codes) are skipped on that strand.  The reverse strand scores the reverse
complement of the same window.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np
from numba import njit

from scoremotifs.exceptions import SequenceScoringFailure
from scoremotifs.models import BackgroundModel, PositionWeightMatrix
from scoremotifs.records import MatchPrediction, SequenceRecord, SequenceResult

UNRESOLVED = 4
INVALID = 255

_COMPLEMENT = str.maketrans("ACGTacgt", "TGCAtgca")


def _build_trans_table() -> bytes:
    table = bytearray([INVALID] * 256)
    for char in b"NRYSWKMBDHVnryswkmbdhv":
        table[char] = UNRESOLVED
    for char, code in zip(b"ACGTacgt", [0, 1, 2, 3] * 2, strict=False):
        table[char] = code
    return bytes(table)


_TRANS_TABLE = _build_trans_table()


def encode_sequence(sequence: str, sequence_id: str = "") -> np.ndarray:
    """Encode a nucleotide string as int8 codes A=0, C=1, G=2, T=3, unresolved=4."""
    if len(sequence) == 0:
        raise SequenceScoringFailure(sequence_id, "zero-length sequence")
    try:
        raw = sequence.encode("ascii")
    except UnicodeEncodeError:
        raise SequenceScoringFailure(sequence_id, "sequence contains non-ASCII characters") from None

    codes = np.frombuffer(raw.translate(_TRANS_TABLE), dtype=np.uint8)
    bad = np.flatnonzero(codes == INVALID)
    if bad.size:
        symbol = sequence[int(bad[0])]
        raise SequenceScoringFailure(sequence_id, f"unexpected symbol {symbol!r} at position {int(bad[0]) + 1}")
    return codes.astype(np.int8)


def reverse_complement(sequence: str) -> str:
    """Reverse the sequence and swap A<->T, C<->G; other symbols are kept."""
    return sequence.translate(_COMPLEMENT)[::-1]


@njit(nogil=True, cache=True)
def _window_scores_jit(encoded, matrix, background):
    """Forward and reverse log-odds for every window of one sequence."""
    length = matrix.shape[0]
    n_windows = encoded.shape[0] - length + 1
    if n_windows < 0:
        n_windows = 0

    rc_table = np.array([3, 2, 1, 0, 4], dtype=np.int8)
    forward = np.zeros(n_windows, dtype=np.float64)
    reverse = np.zeros(n_windows, dtype=np.float64)

    for k in range(n_windows):
        motif_f = 0.0
        bg_f = 0.0
        motif_r = 0.0
        bg_r = 0.0
        for j in range(length):
            base = encoded[k + j]
            if base != 4:
                motif_f += matrix[j, base]
                bg_f += background[base]
            rbase = rc_table[encoded[k + length - 1 - j]]
            if rbase != 4:
                motif_r += matrix[j, rbase]
                bg_r += background[rbase]
        forward[k] = motif_f - bg_f
        reverse[k] = motif_r - bg_r

    return forward, reverse


def all_window_scores(
    encoded: np.ndarray, motif: PositionWeightMatrix, background: BackgroundModel
) -> Tuple[np.ndarray, np.ndarray]:
    """Score every window of an encoded sequence; returns (forward, reverse)."""
    return _window_scores_jit(encoded, motif.matrix, background.log_frequencies)


def score_window(
    sequence: str, offset: int, motif: PositionWeightMatrix, background: BackgroundModel
) -> Tuple[float, float]:
    """
    Score a single window on both strands.

    This is the scalar counterpart of :func:`all_window_scores` and sums in
    the same order, so both give identical values.
    """
    length = motif.length
    if offset < 1 or offset + length - 1 > len(sequence):
        raise ValueError(
            f"Window at offset {offset} does not fit in a sequence of length {len(sequence)} (motif length {length})"
        )

    codes = encode_sequence(sequence[offset - 1 : offset - 1 + length])
    matrix = motif.matrix
    bg = background.log_frequencies

    motif_f = bg_f = motif_r = bg_r = 0.0
    for j in range(length):
        base = codes[j]
        if base != UNRESOLVED:
            motif_f += matrix[j, base]
            bg_f += bg[base]
        rbase = codes[length - 1 - j]
        if rbase != UNRESOLVED:
            rbase = 3 - rbase
            motif_r += matrix[j, rbase]
            bg_r += bg[rbase]

    return float(motif_f - bg_f), float(motif_r - bg_r)


def call_matches(
    forward: np.ndarray, reverse: np.ndarray, motif: PositionWeightMatrix, threshold: float
) -> List[MatchPrediction]:
    """Turn strand scores above ``threshold`` into predictions, in offset order.

    Both strands report the forward window's coordinates ``[offset, offset + L - 1]``.
    """
    span = motif.length - 1
    hits_f = forward > threshold
    hits_r = reverse > threshold

    matches = []
    for k in np.flatnonzero(hits_f | hits_r):
        offset = int(k) + 1
        if hits_f[k]:
            matches.append(MatchPrediction(motif.name, "+", offset, offset + span, float(forward[k])))
        if hits_r[k]:
            matches.append(MatchPrediction(motif.name, "-", offset, offset + span, float(reverse[k])))
    return matches


def score_sequence(
    record: SequenceRecord,
    motif: PositionWeightMatrix,
    background: BackgroundModel,
    threshold: float = 0.0,
    scores: bool = True,
    predictions: bool = False,
) -> SequenceResult:
    """Score one sequence against one motif and package the result."""
    encoded = encode_sequence(record.sequence, record.id)
    forward, reverse = all_window_scores(encoded, motif, background)

    track: Optional[np.ndarray] = None
    if scores:
        track = np.maximum(forward, reverse)

    matches: List[MatchPrediction] = []
    if predictions:
        matches = call_matches(forward, reverse, motif, threshold)

    return SequenceResult.from_record(record, motif.name, scores=track, predictions=matches)
