"""
SOURCE_MC: Initial-state sampling for radiation Monte Carlo

Generates the initial particle states (position, direction, energy,
weight) of an environmental gamma source in the air around a box detector,
for both forward (analog) and backward (importance-weighted) transport.

Modules:
    core: Units, errors, spectrum table, box geometry, state records
    sampling: Forward and backward samplers
    generator: Batch generation (serial and multiprocess)
    config: Defaults and YAML configuration
    io: HDF5 export of sampled batches
    validation: Statistical checks of sampled distributions
"""

__version__ = "0.1.0"

from source_mc.core.errors import (
    SourceError,
    InvalidSpectrum,
    InvalidGeometry,
    InvalidParameter,
    ConfigError,
)
from source_mc.core.spectrum import SpectrumTable
from source_mc.core.geometry import GeometryExtents
from source_mc.core.state import ParticleState, StateArray, STATE_DTYPE
from source_mc.sampling.forward import ForwardSampler
from source_mc.sampling.backward import BackwardSampler
from source_mc.generator.engine import SourceGenerator
from source_mc.config import SourceConfig, load_config

__all__ = [
    "SourceError",
    "InvalidSpectrum",
    "InvalidGeometry",
    "InvalidParameter",
    "ConfigError",
    "SpectrumTable",
    "GeometryExtents",
    "ParticleState",
    "StateArray",
    "STATE_DTYPE",
    "ForwardSampler",
    "BackwardSampler",
    "SourceGenerator",
    "SourceConfig",
    "load_config",
]
