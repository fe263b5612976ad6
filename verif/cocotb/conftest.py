"""
PE Core Verification - pytest configuration for the cocotb benches.

The benches drive Verilog produced by scripts/gen_decoder.py and
scripts/gen_mac_array.py; run those first to populate gen/.
"""

import os
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

GENERATED_RTL = {
    "decoder": "decoder.v",
    "mac_array": "mac_array.v",
}


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "verilator: marks tests requiring Verilator")
    config.addinivalue_line("markers", "icarus: marks tests requiring Icarus Verilog")


def pytest_collection_modifyitems(config, items):  # noqa: ARG001
    """Skip tests whose simulator is not the selected one."""
    sim = os.environ.get("SIM", "icarus").lower()

    for item in items:
        for marker in ("verilator", "icarus"):
            if marker in item.keywords and sim != marker:
                item.add_marker(pytest.mark.skip(reason=f"Requires {marker} simulator"))


@pytest.fixture(scope="session")
def gen_dir() -> Path:
    """Return the generated RTL directory."""
    return PROJECT_ROOT / "gen"


@pytest.fixture(scope="session")
def sim_name() -> str:
    """Return the current simulator name."""
    return os.environ.get("SIM", "icarus").lower()


@pytest.fixture(params=sorted(GENERATED_RTL))
def generated_rtl(request, gen_dir) -> Path:
    """Path to a generated Verilog file; skips if the generator has not run."""
    path = gen_dir / GENERATED_RTL[request.param]
    if not path.exists():
        pytest.skip(f"{path.name} not generated (run scripts/gen_{request.param}.py)")
    return path
