"""High-level public API for motif scoring."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import numpy as np
import pandas as pd

from scoremotifs.dispatch import ScanOptions, dispatch
from scoremotifs.emit import OutputModes
from scoremotifs.io import FastaFile
from scoremotifs.models import BackgroundModel, ModelStore, PositionWeightMatrix, default_background
from scoremotifs.pipeline import SequenceSource, run_pipeline

MotifRef = Union[ModelStore, Mapping[str, Any], str, Path]

_BACKENDS = ("threading", "loky")


@dataclass
class ScanConfig:
    """Unified configuration object for library usage."""

    motifs: MotifRef
    sequences: SequenceSource
    prefix: str = "score_motifs"
    threshold: float = 0.0
    predictions: bool = True
    scores: bool = False
    wig: bool = False
    genomic_bed: bool = False
    pseudocount: float = 0.0
    workers: int = 1
    backend: str = "threading"
    preserve_order: bool = False
    background: Optional[BackgroundModel] = None

    @property
    def modes(self) -> OutputModes:
        return OutputModes(
            scores=self.scores, wig=self.wig, predictions=self.predictions, genomic_bed=self.genomic_bed
        )


def create_config(
    motifs: MotifRef,
    sequences: SequenceSource,
    prefix: str = "score_motifs",
    threshold: float = 0.0,
    predictions: bool = False,
    scores: bool = False,
    wig: bool = False,
    genomic_bed: bool = False,
    pseudocount: float = 0.0,
    workers: int = 1,
    backend: str = "threading",
    preserve_order: bool = False,
    background: Optional[BackgroundModel] = None,
    background_file: Optional[str] = None,
) -> ScanConfig:
    """Build a validated scan config, applying the output-mode defaults."""
    logger = logging.getLogger(__name__)

    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")
    if backend not in _BACKENDS:
        raise ValueError(f"Unknown backend: {backend!r}. Available: {', '.join(_BACKENDS)}")
    if pseudocount < 0:
        raise ValueError(f"pseudocount must be non-negative, got {pseudocount}")

    if background_file:
        logger.warning(
            "Background model files are not currently implemented. "
            "Ignoring and using the single nucleotide background model."
        )

    if wig:
        scores = True
    if not predictions and not scores:
        logger.warning("No output mode specified. Defaulting to predictions.")
        predictions = True

    return ScanConfig(
        motifs=motifs,
        sequences=sequences,
        prefix=str(prefix),
        threshold=float(threshold),
        predictions=predictions,
        scores=scores,
        wig=wig,
        genomic_bed=genomic_bed,
        pseudocount=pseudocount,
        workers=workers,
        backend=backend,
        preserve_order=preserve_order,
        background=background,
    )


def resolve_store(
    motifs: MotifRef, pseudocount: float = 0.0, background: Optional[BackgroundModel] = None
) -> ModelStore:
    """Convert a motif reference to a :class:`ModelStore`."""
    if isinstance(motifs, ModelStore):
        return motifs
    if isinstance(motifs, (str, Path)):
        path = Path(motifs)
        if not path.exists():
            raise FileNotFoundError(f"Motif file not found: {path}")
        return ModelStore.from_meme(path, pseudocount=pseudocount, background=background)
    if isinstance(motifs, Mapping):
        if all(isinstance(m, PositionWeightMatrix) for m in motifs.values()):
            return ModelStore(motifs, background)
        return ModelStore.from_matrices(motifs, pseudocount=pseudocount, background=background)
    raise TypeError(f"Unsupported motif reference type: {type(motifs)!r}")


def run_scan(config: ScanConfig) -> Dict[str, Any]:
    """Execute a scoring run described by ``config`` and return its summary."""
    store = resolve_store(config.motifs, config.pseudocount, config.background)
    return run_pipeline(
        store,
        config.sequences,
        config.modes,
        prefix=config.prefix,
        threshold=config.threshold,
        workers=config.workers,
        backend=config.backend,
        preserve_order=config.preserve_order,
    )


def score_motifs(motifs: MotifRef, sequences: SequenceSource, **kwargs) -> Dict[str, Any]:
    """Single-call entry point: build a config from ``kwargs`` and run it."""
    return run_scan(create_config(motifs, sequences, **kwargs))


def _resolve_sequences(sequences: SequenceSource) -> Iterable:
    if isinstance(sequences, (str, Path)):
        return FastaFile(sequences)
    return sequences


def _resolve_motif(motif: Union[PositionWeightMatrix, str], store: Optional[ModelStore]) -> PositionWeightMatrix:
    if isinstance(motif, PositionWeightMatrix):
        return motif
    if store is None:
        raise ValueError("A ModelStore is required when the motif is given by name")
    return store[motif]


def get_scores(
    motif: PositionWeightMatrix,
    sequences: SequenceSource,
    background: Optional[BackgroundModel] = None,
    workers: int = 1,
) -> Dict[str, np.ndarray]:
    """Best-strand score track of every sequence, keyed by sequence id, in input order."""
    background = background or default_background()
    results = dispatch(
        _resolve_sequences(sequences),
        motif,
        background,
        worker_count=workers,
        options=ScanOptions(scores=True),
        preserve_order=True,
    )
    return {result.id: result.scores for result in results if not result.failed}


def get_sites(
    motif: Union[PositionWeightMatrix, str],
    sequences: SequenceSource,
    threshold: float = 0.0,
    store: Optional[ModelStore] = None,
    genomic: bool = False,
    workers: int = 1,
) -> pd.DataFrame:
    """Predicted matches above ``threshold`` as a DataFrame, sorted by sequence and score."""
    pwm = _resolve_motif(motif, store)
    background = store.background if store is not None else default_background()
    options = ScanOptions(threshold=threshold, scores=False, predictions=True)

    rows: List[Dict[str, Any]] = []
    results = dispatch(
        _resolve_sequences(sequences), pwm, background, worker_count=workers, options=options, preserve_order=True
    )
    for seq_index, result in enumerate(results):
        shift = result.chrom_start if genomic else 0
        for match in result.predictions:
            rows.append(
                {
                    "seq_index": seq_index,
                    "chrom": result.chrom,
                    "start": match.start + shift,
                    "end": match.end + shift,
                    "id": result.id,
                    "motif": match.motif_name,
                    "strand": match.strand,
                    "score": match.score,
                }
            )

    columns = ["seq_index", "chrom", "start", "end", "id", "motif", "strand", "score"]
    df = pd.DataFrame(rows, columns=columns)
    if len(df) > 0:
        df = df.sort_values(["seq_index", "score"], ascending=[True, False]).reset_index(drop=True)

    logger = logging.getLogger(__name__)
    logger.info(f"Found {len(df)} site(s) for motif {pwm.name}")
    return df
