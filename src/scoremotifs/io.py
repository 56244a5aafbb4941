from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Union

import numpy as np

from scoremotifs.exceptions import ParseError
from scoremotifs.records import SequenceRecord

MotifSource = Union[str, Path, Iterable[str]]

_MOTIF_NAME = re.compile(r"MOTIF (\S+)")


def _iter_lines(source: MotifSource) -> Iterator[str]:
    """Yield lines from a path or pass through an iterable of lines."""
    if isinstance(source, (str, Path)):
        with open(source, "r") as handle:
            yield from handle
    else:
        yield from source


def read_meme(source: MotifSource) -> Dict[str, np.ndarray]:
    """
    Read every motif block of a MEME file as raw probability rows.

    A block starts at a ``MOTIF <name>`` line, its matrix begins after the
    ``letter-probability matrix`` header and ends at the ``URL`` line.  Each
    matrix row must hold four numbers (A, C, G, T).  Returns a mapping of
    motif name to an ``(L, 4)`` float64 array, in file order.
    """
    motifs: Dict[str, np.ndarray] = {}
    name = None
    rows: List[List[float]] = []
    in_matrix = False
    line_number = 0

    for line_number, line in enumerate(_iter_lines(source), start=1):
        stripped = line.strip()

        match = _MOTIF_NAME.search(line)
        if match:
            if in_matrix:
                raise ParseError(f"motif {name!r} is missing its terminating URL line", line_number)
            name = match.group(1)
            continue

        if line.startswith("letter"):
            if name is None:
                raise ParseError("matrix header without a preceding MOTIF line", line_number)
            if in_matrix:
                raise ParseError(f"motif {name!r} is missing its terminating URL line", line_number)
            in_matrix = True
            rows = []
            continue

        if line.startswith("URL"):
            if not in_matrix:
                continue
            in_matrix = False
            if not rows:
                raise ParseError(f"motif {name!r} has an empty matrix", line_number)
            if name in motifs:
                raise ParseError(f"duplicate motif name {name!r}", line_number)
            motifs[name] = np.array(rows, dtype=np.float64)
            continue

        if in_matrix and stripped:
            parts = stripped.split()
            if len(parts) != 4:
                raise ParseError(f"motif {name!r}: expected 4 columns, got {len(parts)}", line_number)
            try:
                rows.append([float(x) for x in parts])
            except ValueError:
                raise ParseError(f"motif {name!r}: non-numeric matrix entry in {stripped!r}", line_number) from None

    if in_matrix:
        raise ParseError(f"motif {name!r} is missing its terminating URL line", line_number)

    logger = logging.getLogger(__name__)
    logger.debug(f"Read {len(motifs)} motif(s)")
    return motifs


def write_meme(motifs: Dict[str, np.ndarray], path: str | Path) -> None:
    """Write probability matrices as MEME blocks that :func:`read_meme` accepts."""
    with open(path, "w") as out:
        out.write("MEME version 4\n\n")
        out.write("ALPHABET= ACGT\n\n")
        out.write("strands: + -\n\n")
        out.write("Background letter frequencies\n")
        out.write("A 0.25 C 0.25 G 0.25 T 0.25\n\n")
        for name, matrix in motifs.items():
            out.write(f"MOTIF {name}\n")
            out.write(f"letter-probability matrix: alength= 4 w= {len(matrix)}\n")
            for row in matrix:
                out.write(" " + " ".join(f"{val:.6f}" for val in row) + "\n")
            out.write(f"URL http://localhost/{name}\n\n")


def iter_fasta(path: str | Path) -> Iterator[SequenceRecord]:
    """Yield FASTA records one at a time."""
    header = None
    chunks: List[str] = []

    with open(path, "r") as handle:
        for line in handle:
            line = line.strip()
            if not line:
                continue
            if line.startswith(">"):
                if header is not None:
                    yield _make_record(header, chunks)
                header = line[1:]
                chunks = []
            elif header is not None:
                chunks.append(line)

    if header is not None:
        yield _make_record(header, chunks)


def _make_record(header: str, chunks: List[str]) -> SequenceRecord:
    parts = header.split(None, 1)
    seq_id = parts[0] if parts else ""
    description = parts[1].strip() if len(parts) > 1 else ""
    return SequenceRecord(id=seq_id, description=description, sequence="".join(chunks))


class FastaFile:
    """
    Restartable FASTA sequence source.

    Every ``iter()`` reopens the file, and ``len()`` counts header lines
    without building records, which lets the dispatcher count the stream
    before scoring it.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        if not self.path.exists():
            raise FileNotFoundError(f"Sequence file not found: {self.path}")

    def __iter__(self) -> Iterator[SequenceRecord]:
        return iter_fasta(self.path)

    def __len__(self) -> int:
        with open(self.path, "r") as handle:
            return sum(1 for line in handle if line.strip().startswith(">"))

    def __repr__(self) -> str:
        return f"FastaFile({str(self.path)!r})"


def write_fasta(records: Iterable[SequenceRecord], path: str | Path) -> None:
    """Write sequence records to a FASTA file."""
    with open(path, "w") as out:
        for record in records:
            header = f"{record.id} {record.description}".rstrip()
            out.write(f">{header}\n")
            out.write(f"{record.sequence}\n")
