"""
Configuration of the source problem.

Module-level constants hold the reference layout. A YAML file can override
any of them:

    geometry:
      air_size_m: [2000.0, 2000.0, 1000.0]
      ground_thickness_m: 1.0
      detector_size_m: [20.0, 20.0, 10.0]
      clearance_m: 0.05
    spectrum:               # optional, (energy [MeV], intensity) pairs
      - [0.35193, 35.60]
      - [0.60932, 45.49]
    sampling:
      alpha: 0.5
      emin_mev: 0.01
      seed: null            # null -> seeded from OS entropy
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

import yaml

from source_mc.core.errors import ConfigError
from source_mc.core.geometry import GeometryExtents
from source_mc.core.spectrum import SpectrumTable

# =============================================================================
# Geometry (metres)
# =============================================================================

DEFAULT_AIR_SIZE_M = (2000.0, 2000.0, 1000.0)
DEFAULT_GROUND_THICKNESS_M = 1.0
DEFAULT_DETECTOR_SIZE_M = (20.0, 20.0, 10.0)

# Gap between the ground surface and the detector bottom
DEFAULT_CLEARANCE_M = 0.05

# =============================================================================
# Sampling
# =============================================================================

# Probability of the spectrum branch in backward sampling
DEFAULT_ALPHA = 0.5

# Lower bound of the log-uniform energy proposal (MeV)
DEFAULT_EMIN_MEV = 1.0e-2

# Batches above this size show a progress bar when verbose
PROGRESS_THRESHOLD = 100_000

_SECTIONS = {
    'geometry': {'air_size_m', 'ground_thickness_m', 'detector_size_m', 'clearance_m'},
    'spectrum': None,
    'sampling': {'alpha', 'emin_mev', 'seed'},
}


def _vector(value, name: str) -> Tuple[float, float, float]:
    try:
        vector = tuple(float(v) for v in value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a list of 3 numbers, got {value!r}") from exc
    if len(vector) != 3:
        raise ConfigError(f"{name} must have 3 components, got {len(vector)}")
    return vector


def _number(value, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc


def _spectrum(value) -> List[Tuple[float, float]]:
    if not isinstance(value, list):
        raise ConfigError(f"spectrum must be a list of [energy, intensity], got {value!r}")
    pairs = []
    for entry in value:
        if not isinstance(entry, (list, tuple)) or len(entry) != 2:
            raise ConfigError(f"spectrum entry must be [energy, intensity], got {entry!r}")
        try:
            pairs.append((float(entry[0]), float(entry[1])))
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Non-numeric spectrum entry {entry!r}") from exc
    return pairs


@dataclass
class SourceConfig:
    """All parameters needed to build a SourceGenerator."""

    air_size_m: Tuple[float, float, float] = DEFAULT_AIR_SIZE_M
    ground_thickness_m: float = DEFAULT_GROUND_THICKNESS_M
    detector_size_m: Tuple[float, float, float] = DEFAULT_DETECTOR_SIZE_M
    clearance_m: float = DEFAULT_CLEARANCE_M
    spectrum: Optional[List[Tuple[float, float]]] = field(default=None)
    alpha: float = DEFAULT_ALPHA
    emin_mev: float = DEFAULT_EMIN_MEV
    seed: Optional[int] = None

    def build_extents(self) -> GeometryExtents:
        return GeometryExtents.from_layout(
            air_size=self.air_size_m,
            ground_thickness=self.ground_thickness_m,
            detector_size=self.detector_size_m,
            clearance=self.clearance_m,
        )

    def build_spectrum(self) -> SpectrumTable:
        if self.spectrum is None:
            return SpectrumTable.default()
        return SpectrumTable(self.spectrum)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "SourceConfig":
        """Build from the nested mapping layout of the YAML file."""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration must be a mapping, got {type(data).__name__}")

        unknown = set(data) - set(_SECTIONS)
        if unknown:
            raise ConfigError(f"Unknown configuration sections: {sorted(unknown)}")

        kwargs = {}

        geometry = data.get('geometry') or {}
        sampling = data.get('sampling') or {}
        for section, values in (('geometry', geometry), ('sampling', sampling)):
            if not isinstance(values, dict):
                raise ConfigError(f"Section '{section}' must be a mapping")
            unknown = set(values) - _SECTIONS[section]
            if unknown:
                raise ConfigError(f"Unknown keys in '{section}': {sorted(unknown)}")

        if 'air_size_m' in geometry:
            kwargs['air_size_m'] = _vector(geometry['air_size_m'], 'air_size_m')
        if 'detector_size_m' in geometry:
            kwargs['detector_size_m'] = _vector(geometry['detector_size_m'], 'detector_size_m')
        for key in ('ground_thickness_m', 'clearance_m'):
            if key in geometry:
                kwargs[key] = _number(geometry[key], key)

        if data.get('spectrum') is not None:
            kwargs['spectrum'] = _spectrum(data['spectrum'])

        for key in ('alpha', 'emin_mev'):
            if key in sampling:
                kwargs[key] = _number(sampling[key], key)
        if sampling.get('seed') is not None:
            seed = sampling['seed']
            if not isinstance(seed, int) or isinstance(seed, bool):
                raise ConfigError(f"seed must be an integer, got {seed!r}")
            kwargs['seed'] = seed

        return cls(**kwargs)

    def to_dict(self) -> dict:
        data = {
            'geometry': {
                'air_size_m': list(self.air_size_m),
                'ground_thickness_m': self.ground_thickness_m,
                'detector_size_m': list(self.detector_size_m),
                'clearance_m': self.clearance_m,
            },
            'sampling': {
                'alpha': self.alpha,
                'emin_mev': self.emin_mev,
                'seed': self.seed,
            },
        }
        if self.spectrum is not None:
            data['spectrum'] = [list(pair) for pair in self.spectrum]
        return data


def load_config(path: Union[str, Path]) -> SourceConfig:
    """
    Load a SourceConfig from a YAML file.

    Raises:
        FileNotFoundError: if the file does not exist
        ConfigError: if the content is malformed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, 'r') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    return SourceConfig.from_dict(data)


def save_config(config: SourceConfig, path: Union[str, Path]):
    """Write a SourceConfig as YAML."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False)
