"""
Integration tests for the score-motifs command line.

These tests run the CLI end to end on the files in examples/ and check the
files it writes.
"""

import json
import subprocess
import sys

import pytest

from scoremotifs import __version__
from scoremotifs.io import FastaFile


def run_cli(*args: str) -> subprocess.CompletedProcess:
    """Run CLI through current Python env to avoid global PATH contamination."""
    return subprocess.run([sys.executable, "-m", "scoremotifs.cli", *args], capture_output=True, text=True)


@pytest.fixture
def meme_file(examples_dir):
    return examples_dir / "motifs.meme"


@pytest.fixture
def fasta_file(examples_dir):
    return examples_dir / "sequences.fa"


@pytest.fixture
def records(fasta_file):
    return list(FastaFile(fasta_file))


MOTIF_LENGTHS = {"MA0035.4": 6, "MA0139.2": 8}


def test_predictions_default_mode(meme_file, fasta_file, temp_dir):
    """Without an output flag the run falls back to predictions"""
    prefix = temp_dir / "default"
    result = run_cli(str(meme_file), str(fasta_file), "--prefix", str(prefix))
    assert result.returncode == 0, f"Command failed with stderr: {result.stderr}"

    assert (temp_dir / "default.motif_predictions.bed").exists()
    assert not (temp_dir / "default.motif_scores.txt").exists()
    assert "Defaulting to predictions" in result.stderr


def test_predictions_bed(meme_file, fasta_file, temp_dir, records):
    prefix = temp_dir / "pred"
    result = run_cli(str(meme_file), str(fasta_file), "--predictions", "--thresh", "3", "--prefix", str(prefix))
    assert result.returncode == 0, f"Command failed with stderr: {result.stderr}"

    summary = json.loads(result.stdout)
    assert set(summary) == {
        "motifs",
        "sequences_scored",
        "sequences_failed",
        "predictions",
        "outputs",
        "elapsed_seconds",
    }
    assert summary["motifs"] == ["MA0035.4", "MA0139.2"]
    assert summary["sequences_scored"] == 2 * len(records)
    assert summary["sequences_failed"] == 0

    lines = (temp_dir / "pred.motif_predictions.bed").read_text().splitlines()
    assert len(lines) == summary["predictions"]
    assert len(lines) > 0

    lengths = {r.id: len(r) for r in records}
    for line in lines:
        fields = line.split("\t")
        assert len(fields) == 7
        chrom, start, end, seq_id, motif, strand, score = fields
        assert strand in ("+", "-")
        assert float(score) > 3
        assert int(end) - int(start) == MOTIF_LENGTHS[motif] - 1
        assert 1 <= int(start) and int(end) <= lengths[seq_id]
        assert seq_id != "short"

    # GATA motif output comes first, all in one file
    motifs = [line.split("\t")[4] for line in lines]
    assert motifs == sorted(motifs)


def test_genomic_bed_shifts_coordinates(meme_file, fasta_file, temp_dir):
    local = temp_dir / "local"
    genomic = temp_dir / "genomic"
    common = [str(meme_file), str(fasta_file), "--predictions", "--thresh", "3"]

    assert run_cli(*common, "--prefix", str(local)).returncode == 0
    assert run_cli(*common, "--genomic-bed", "--prefix", str(genomic)).returncode == 0

    local_lines = (temp_dir / "local.motif_predictions.bed").read_text().splitlines()
    genomic_lines = (temp_dir / "genomic.motif_predictions.bed").read_text().splitlines()
    assert len(local_lines) == len(genomic_lines)

    offsets = {"hg19_chr1_1": 1000, "hg19_chr2_1": 5000, "contig_7": 0}
    for loc, gen in zip(local_lines, genomic_lines, strict=True):
        loc_fields = loc.split("\t")
        gen_fields = gen.split("\t")
        shift = offsets[loc_fields[3]]
        assert int(gen_fields[1]) == int(loc_fields[1]) + shift
        assert int(gen_fields[2]) == int(loc_fields[2]) + shift
        assert gen_fields[3:] == loc_fields[3:]


def test_text_scores(meme_file, fasta_file, temp_dir, records):
    prefix = temp_dir / "txt"
    result = run_cli(str(meme_file), str(fasta_file), "--scores", "--prefix", str(prefix))
    assert result.returncode == 0, f"Command failed with stderr: {result.stderr}"

    lines = (temp_dir / "txt.motif_scores.txt").read_text().splitlines()
    assert len(lines) == 2 * len(records)

    lengths = {r.id: len(r) for r in records}
    for line in lines:
        fields = line.split("\t")
        assert len(fields) == 6
        chrom, start1, end, seq_id, motif = fields[:5]
        values = [v for v in fields[5].split(",") if v]
        assert len(values) == max(0, lengths[seq_id] - MOTIF_LENGTHS[motif] + 1)
        assert all(len(v.split(".")[1]) == 6 for v in values)

    first = lines[0].split("\t")
    assert first[:5] == ["chr1", "1001", "1060", "hg19_chr1_1", "MA0035.4"]

    contig = next(line for line in lines if "\tcontig_7\t" in line).split("\t")
    assert contig[:3] == ["contig_7", "1", str(lengths["contig_7"])]


def test_wig_scores(meme_file, fasta_file, temp_dir, records):
    prefix = temp_dir / "wig" / "run"
    result = run_cli(
        str(meme_file), str(fasta_file), "--wig-scores", "--nthreads", "2", "--ordered", "--prefix", str(prefix)
    )
    assert result.returncode == 0, f"Command failed with stderr: {result.stderr}"

    assert not (temp_dir / "wig" / "run.motif_scores.txt").exists()
    for motif, length in MOTIF_LENGTHS.items():
        text = (temp_dir / "wig" / f"run.{motif}.wig").read_text()
        blocks = text.split("\n\n")
        assert blocks[-1] == ""
        blocks = blocks[:-1]
        assert len(blocks) == len(records)

        for record, block in zip(records, blocks, strict=True):
            block_lines = block.split("\n")
            assert block_lines[0].startswith("fixedStep chrom=")
            assert block_lines[0].endswith("step=1")
            assert block_lines[1].startswith(f"#name={record.id}")
            assert len(block_lines) - 2 == max(0, len(record) - length + 1)

        assert text.startswith("fixedStep chrom=chr1 start=1001 step=1\n#name=hg19_chr1_1 range=chr1:1000-1060")


def test_parallel_matches_serial(meme_file, fasta_file, temp_dir):
    serial = temp_dir / "serial"
    parallel = temp_dir / "parallel"
    common = [str(meme_file), str(fasta_file), "--predictions", "--scores", "--thresh", "2"]

    assert run_cli(*common, "--prefix", str(serial)).returncode == 0
    assert run_cli(*common, "--nthreads", "4", "--prefix", str(parallel)).returncode == 0

    for suffix in ("motif_predictions.bed", "motif_scores.txt"):
        serial_lines = (temp_dir / f"serial.{suffix}").read_text().splitlines()
        parallel_lines = (temp_dir / f"parallel.{suffix}").read_text().splitlines()
        assert sorted(serial_lines) == sorted(parallel_lines)


def test_pseudocount_and_background_file(meme_file, fasta_file, temp_dir):
    result = run_cli(
        str(meme_file),
        str(fasta_file),
        "--pseudo",
        "0.01",
        "--bg-f",
        str(fasta_file),
        "--prefix",
        str(temp_dir / "bg"),
    )
    assert result.returncode == 0, f"Command failed with stderr: {result.stderr}"
    assert "not currently implemented" in result.stderr


def test_version():
    result = run_cli("--version")
    assert result.returncode == 0
    assert __version__ in result.stdout


def test_missing_sequence_file(meme_file, temp_dir):
    result = run_cli(str(meme_file), str(temp_dir / "missing.fa"), "--prefix", str(temp_dir / "x"))
    assert result.returncode == 1
    assert "not found" in result.stderr
    assert list(temp_dir.iterdir()) == []


def test_malformed_meme(fasta_file, temp_dir):
    bad = temp_dir / "bad.meme"
    bad.write_text("MOTIF broken\nletter-probability matrix: alength= 4 w= 1\n 0.25 0.25 0.25\nURL x\n")

    result = run_cli(str(bad), str(fasta_file), "--scores", "--predictions", "--prefix", str(temp_dir / "out"))
    assert result.returncode == 1
    assert "line 3" in result.stderr
    assert list(temp_dir.iterdir()) == [bad]


def test_invalid_thread_count(meme_file, fasta_file, temp_dir):
    result = run_cli(str(meme_file), str(fasta_file), "--nthreads", "0", "--prefix", str(temp_dir / "x"))
    assert result.returncode == 1


def test_no_arguments_prints_help():
    result = run_cli()
    assert result.returncode == 1
    assert "usage:" in result.stderr
