import numpy as np
import pytest

from source_mc.core.geometry import GeometryExtents
from source_mc.core.spectrum import SpectrumTable


class ScriptedRandom:
    """Random source replaying a fixed list of uniform variates."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = 0

    def random(self):
        value = self.values[self.calls]
        self.calls += 1
        return value

    @property
    def exhausted(self):
        return self.calls == len(self.values)


@pytest.fixture
def scripted():
    return ScriptedRandom


@pytest.fixture
def rng():
    return np.random.default_rng(20240611)


@pytest.fixture
def small_extents():
    """8 m air cube over 2 m of ground, 2 m detector cube centred at z = -1.5 m."""
    return GeometryExtents.from_layout(
        air_size=(8.0, 8.0, 8.0), ground_thickness=2.0,
        detector_size=(2.0, 2.0, 2.0), clearance=0.5)


@pytest.fixture
def flat_extents():
    """Same air, 2 x 4 x 1 m detector centred at z = -2 m."""
    return GeometryExtents.from_layout(
        air_size=(8.0, 8.0, 8.0), ground_thickness=2.0,
        detector_size=(2.0, 4.0, 1.0), clearance=0.5)


@pytest.fixture
def two_lines():
    """CDF [0.25, 1.0] over energies [1, 2] MeV."""
    return SpectrumTable([(1.0, 1.0), (2.0, 3.0)])


@pytest.fixture
def default_extents():
    return GeometryExtents.default()


@pytest.fixture
def default_spectrum():
    return SpectrumTable.default()
