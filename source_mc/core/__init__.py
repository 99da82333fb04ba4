"""Core module: units, errors, spectrum, geometry and state records."""

from source_mc.core.spectrum import SpectrumTable
from source_mc.core.geometry import GeometryExtents, BoxPlacement
from source_mc.core.state import ParticleState, StateArray, STATE_DTYPE

__all__ = ["SpectrumTable", "GeometryExtents", "BoxPlacement",
           "ParticleState", "StateArray", "STATE_DTYPE"]
