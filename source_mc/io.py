"""
HDF5 export and import of sampled state batches.

File layout:
    /states                 STATE_DTYPE compound dataset
    /source_energies        float64, backward batches only
    /geometry/<box>_size_m  box extents
    attrs: mode, n_states, detector_offset_m, source_volume_cm3, alpha (backward)
"""

from pathlib import Path
from typing import Optional, Tuple, Union

import h5py
import numpy as np

from source_mc.core.state import STATE_DTYPE, StateArray
from source_mc.generator.engine import SourceGenerator

SCHEMA_VERSION = "1.0"


def save_states(path: Union[str, Path], states: StateArray,
                generator: SourceGenerator,
                source_energies: Optional[np.ndarray] = None,
                alpha: Optional[float] = None):
    """
    Write a sampled batch with the geometry it was drawn from.

    Parameters:
        path: Output .h5 file
        states: Sampled states
        generator: Generator used to sample them (for metadata)
        source_energies: Companion source energies of a backward batch
        alpha: Spectrum-branch probability of a backward batch
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    mode = 'forward' if source_energies is None else 'backward'
    extents = generator.extents

    with h5py.File(path, "w") as f:
        f.attrs["schema_version"] = SCHEMA_VERSION
        f.attrs["mode"] = mode
        f.attrs["n_states"] = len(states)
        f.attrs["detector_offset_m"] = extents.detector_offset
        f.attrs["source_volume_cm3"] = generator.source_volume()
        if alpha is not None:
            f.attrs["alpha"] = float(alpha)

        f.create_dataset("states", data=states.states, compression="gzip")
        if source_energies is not None:
            f.create_dataset("source_energies", data=np.asarray(source_energies[:len(states)]),
                             compression="gzip")

        geo = f.create_group("geometry")
        geo.create_dataset("world_size_m", data=extents.world_size)
        geo.create_dataset("air_size_m", data=extents.air_size)
        geo.create_dataset("ground_size_m", data=extents.ground_size)
        geo.create_dataset("detector_size_m", data=extents.detector_size)

        lines = f.create_group("spectrum")
        lines.create_dataset("energies_MeV", data=generator.spectrum.energies)
        lines.create_dataset("cdf", data=generator.spectrum.cdf)


def load_states(path: Union[str, Path]) -> Tuple[StateArray, Optional[np.ndarray], dict]:
    """
    Read a batch written by save_states.

    Returns:
        (states, source_energies or None, attributes)
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"State file not found: {path}")

    with h5py.File(path, "r") as f:
        states = np.asarray(f["states"][...], dtype=STATE_DTYPE)
        source_energies = f["source_energies"][...] if "source_energies" in f else None
        attrs = {key: f.attrs[key] for key in f.attrs}
        for key in ("mode", "schema_version"):
            if isinstance(attrs.get(key), bytes):
                attrs[key] = attrs[key].decode()

    return StateArray.wrap(states), source_energies, attrs
