"""
Pytest configuration and common fixtures for score-motifs tests.
"""
import sys
import tempfile
from pathlib import Path

import pytest

from scoremotifs.models import BackgroundModel, build_pwm
from scoremotifs.records import SequenceRecord

# Force testing the installed package, not the local source
project_root = str(Path(__file__).parent.parent.absolute())
if project_root in sys.path:
    sys.path.remove(project_root)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def examples_dir():
    """Return path to examples directory."""
    return Path(__file__).parent.parent / "examples"


@pytest.fixture
def uniform_background():
    """Background with A=C=G=T=0.25."""
    return BackgroundModel.from_frequencies({"A": 0.25, "C": 0.25, "G": 0.25, "T": 0.25})


@pytest.fixture
def at_motif():
    """Two-row motif preferring A then T."""
    return build_pwm("AT", [[0.7, 0.1, 0.1, 0.1], [0.1, 0.1, 0.1, 0.7]])


@pytest.fixture
def random_records():
    """Thirty random sequences of varying length, some shorter than typical motifs."""
    import numpy as np

    rng = np.random.default_rng(127)
    records = []
    for i in range(30):
        length = int(rng.integers(3, 120))
        seq = "".join(rng.choice(list("ACGTN"), size=length, p=[0.24, 0.24, 0.24, 0.24, 0.04]))
        description = f"region chr{i % 3 + 1} {i * 1000} {i * 1000 + length}"
        records.append(SequenceRecord(id=f"seq{i}", description=description, sequence=seq))
    return records
