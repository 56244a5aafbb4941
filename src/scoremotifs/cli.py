import argparse
import json
import logging
import os
import sys

from scoremotifs import __version__
from scoremotifs.api import create_config, run_scan
from scoremotifs.exceptions import ScoreMotifsError


def setup_logging(verbose: bool):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    if verbose:
        logging.getLogger("numba").setLevel(logging.WARNING)


def create_arg_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="score-motifs",
        description=(
            "Generate motif match scores and/or motif predictions at a given score threshold "
            "from MEME-format PWMs and a FASTA file."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
 Examples:
   # Predictions above a log-odds threshold of 5, 4 worker threads
   score-motifs motifs.meme sequences.fa --predictions --thresh 5 --nthreads 4

   # Per-window scores as one wig file per motif
   score-motifs motifs.meme sequences.fa --wig-scores --prefix out/run

   # Genome-referenced predictions with pseudocount smoothing
   score-motifs motifs.meme chroms.fa --predictions --genomic-bed --pseudo 0.01
         """,
    )

    parser.add_argument("motifs", help="A text file containing one or more motif models in MEME format.")
    parser.add_argument("sequences", help="FASTA sequences to score for the motif(s).")

    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument(
        "--scores",
        action="store_true",
        help="Print base-wise window scores for all positions in a bed-like text format, one line per sequence.",
    )
    output_group.add_argument(
        "--wig-scores",
        action="store_true",
        help="Print base-wise scores in fixedStep wig format, one file per motif. (Implies --scores)",
    )
    output_group.add_argument(
        "--predictions",
        action="store_true",
        help="Report windows with scores above the threshold as predicted motif matches.",
    )
    output_group.add_argument(
        "--genomic-bed",
        action="store_true",
        help=(
            "Report predictions in genome-referenced coordinates: the sequence start parsed from the "
            "FASTA description is added to each match position."
        ),
    )
    output_group.add_argument(
        "--prefix",
        default="score_motifs",
        help="Prefix for every output file name; may include a directory. (default: %(default)s)",
    )

    model_group = parser.add_argument_group("Model Options")
    model_group.add_argument(
        "--thresh",
        type=float,
        default=0.0,
        help="Threshold score value to predict a motif match. (default: %(default)s)",
    )
    model_group.add_argument(
        "--pseudo",
        type=float,
        default=0.0,
        help="Add the given pseudocount to each entry in all PWMs and renormalize. (default: %(default)s)",
    )
    model_group.add_argument(
        "--bg-f",
        dest="bg_f",
        help="Background model file. NOT CURRENTLY IMPLEMENTED: ignored with a warning.",
    )

    technical_group = parser.add_argument_group("Technical Options")
    technical_group.add_argument(
        "--nthreads",
        type=int,
        default=1,
        help="Number of worker threads. (default: %(default)s)",
    )
    technical_group.add_argument(
        "--backend",
        choices=["threading", "loky"],
        default="threading",
        help="joblib backend used when --nthreads > 1. (default: %(default)s)",
    )
    technical_group.add_argument(
        "--ordered",
        action="store_true",
        help="Write results in input order when --nthreads > 1 (default is completion order).",
    )
    technical_group.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging for detailed execution tracking.",
    )
    technical_group.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser


def validate_inputs(args) -> None:
    """Validate input files and parameters."""
    logger = logging.getLogger(__name__)
    if not os.path.exists(args.motifs):
        logger.error(f"Motif file not found: {args.motifs}")
        sys.exit(1)
    if not os.path.exists(args.sequences):
        logger.error(f"FASTA file not found: {args.sequences}")
        sys.exit(1)
    if args.nthreads < 1:
        logger.error(f"--nthreads must be at least 1, got {args.nthreads}")
        sys.exit(1)


def main_cli():
    """Main CLI entry point."""
    parser = create_arg_parser()

    if len(sys.argv) == 1:
        parser.print_help(sys.stderr)
        sys.exit(1)

    args = parser.parse_args()

    setup_logging(args.verbose)

    validate_inputs(args)

    logger = logging.getLogger(__name__)
    if args.verbose:
        logger.info("=" * 60)
        logger.info(f"score-motifs {__version__}")
        logger.info("=" * 60)
        logger.info(f"Motifs: {args.motifs}")
        logger.info(f"Sequences: {args.sequences}")
        logger.info(f"Threshold: {args.thresh}")
        logger.info(f"Workers: {args.nthreads}")
        logger.info("=" * 60)

    try:
        config = create_config(
            motifs=args.motifs,
            sequences=args.sequences,
            prefix=args.prefix,
            threshold=args.thresh,
            predictions=args.predictions,
            scores=args.scores,
            wig=args.wig_scores,
            genomic_bed=args.genomic_bed,
            pseudocount=args.pseudo,
            workers=args.nthreads,
            backend=args.backend,
            preserve_order=args.ordered,
            background_file=args.bg_f,
        )
        result = run_scan(config)
        print(json.dumps(result))

    except (ScoreMotifsError, ValueError, OSError) as e:
        logger.error(f"Scoring failed: {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main_cli()
