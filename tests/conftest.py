# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path
import pytest

from labqa.logging.init import reset_logging


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    # real credentials in the developer shell must not leak into config tests
    monkeypatch.delenv("LABQA_API_BASE_URL", raising=False)
    monkeypatch.delenv("LABQA_API_TOKEN", raising=False)
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
strict: false
tolerances:
  linearityOfMaLoading:
    value: 0.1
  consistencyOfRadiationOutput:
    value: 5
    operator: "less than or equal to"
fetch:
  timeout: 10
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "ingest.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


LINEARITY_CSV = (
    "Service Report,QA Lab\n"
    "TEST: LINEARITY OF mA LOADING\n"
    "mA Station,Measured mR 1,Measured mR 2\n"
    "100,5.0,5.2\n"
    "200,10.1,9.9\n"
)

LEAKAGE_CSV = (
    "TEST: RADIATION LEAKAGE LEVEL\n"
    "Workload,500\n"
    "mA,100\n"
    "Location,Front,Back,Unit\n"
    "Tube Head,0.02,0.01,mGy/h\n"
)


@pytest.fixture()
def linearity_csv() -> str:
    return LINEARITY_CSV


@pytest.fixture()
def leakage_csv() -> str:
    return LEAKAGE_CSV


@pytest.fixture()
def lab_files(temp_workdir: Path) -> list[Path]:
    """Two valid lab exports in ./data."""
    data_dir = temp_workdir / "data"
    files = []
    for name, text in [("linearity.csv", LINEARITY_CSV), ("leakage.csv", LEAKAGE_CSV)]:
        f = data_dir / name
        f.write_text(text, encoding="utf-8")
        files.append(f)
    return files
