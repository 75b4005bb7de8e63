import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
src_root = ROOT / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from forcemixer.sim.core.config import ForceParameters, SimulationConfig  # noqa: E402


@pytest.fixture
def neutral_params() -> ForceParameters:
    """Mutation and selection at their midpoints, no stochastic forces."""
    return ForceParameters(
        mutation_rate=50,
        selection_strength=50,
        gene_flow_rate=50,
        drift_strength=0,
        recombination_rate=0,
        population_size=50,
        replication_speed=50,
    )


@pytest.fixture
def fast_config() -> SimulationConfig:
    return SimulationConfig(seed=7, base_interval_ms=1.0)
