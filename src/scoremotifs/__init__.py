"""
score-motifs
============

Parallel sliding-window log-odds scoring of DNA sequences against
position weight matrices.  Every window of every sequence is scored on both
strands against a nucleotide background model; the results are written as
per-window score tracks (text or fixedStep wig) and/or as thresholded match
predictions in a bed-like format.

The top level modules expose the following key components:

``models``
    The model store: log-space :class:`PositionWeightMatrix` and
    :class:`BackgroundModel` containers, pseudocount smoothing and log
    conversion.

``functions``
    The window scorer, a numba-compiled kernel plus a scalar reference
    implementation.

``dispatch``
    A bounded joblib worker pool streaming sequences through the scorer.

``emit``
    Writers for the score-text, score-wig and prediction-bed outputs.

``io``
    MEME motif and FASTA sequence readers.

``api`` / ``pipeline``
    Configuration and orchestration of a full scoring run.

``cli``
    The ``score-motifs`` command line interface.
"""

__version__ = "0.5.0"

from scoremotifs.api import ScanConfig, create_config, get_scores, get_sites, run_scan, score_motifs  # noqa: E402
from scoremotifs.exceptions import (  # noqa: E402
    DispatchError,
    ModelArithmeticError,
    ParseError,
    ScoreMotifsError,
    SequenceScoringFailure,
)
from scoremotifs.models import BackgroundModel, ModelStore, PositionWeightMatrix, default_background  # noqa: E402

__all__ = [
    "BackgroundModel",
    "DispatchError",
    "ModelArithmeticError",
    "ModelStore",
    "ParseError",
    "PositionWeightMatrix",
    "ScanConfig",
    "ScoreMotifsError",
    "SequenceScoringFailure",
    "create_config",
    "default_background",
    "get_scores",
    "get_sites",
    "run_scan",
    "score_motifs",
]
