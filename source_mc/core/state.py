"""
Particle state records using NumPy structured arrays.

The record layout mirrors the state struct consumed by the transport
engine, so batches can be handed over without copying.
"""

import numpy as np
from typing import Tuple


STATE_DTYPE = np.dtype([
    ('position', np.float64, 3),      # x, y, z [cm]
    ('direction', np.float64, 3),     # unit vector
    ('energy', np.float64),           # MeV
    ('weight', np.float64),           # statistical weight
])


class ParticleState:
    """Single initial state (for convenience)."""

    def __init__(self, position: Tuple[float, float, float],
                 direction: Tuple[float, float, float],
                 energy: float, weight: float = 1.0):
        """
        Parameters:
            position: (x, y, z) position [cm]
            direction: (ux, uy, uz) unit direction
            energy: Kinetic energy [MeV]
            weight: Statistical weight
        """
        self.position = np.array(position, dtype=np.float64)
        self.direction = np.array(direction, dtype=np.float64)
        self.energy = float(energy)
        self.weight = float(weight)

    @classmethod
    def from_record(cls, record) -> "ParticleState":
        """Copy a STATE_DTYPE record into a ParticleState."""
        return cls(record['position'], record['direction'],
                   record['energy'], record['weight'])

    def to_structured_array(self) -> np.ndarray:
        """Convert to structured array format."""
        state_array = np.zeros(1, dtype=STATE_DTYPE)
        self.write_to(state_array[0])
        return state_array

    def write_to(self, record):
        """Write this state into an existing STATE_DTYPE record."""
        record['position'] = self.position
        record['direction'] = self.direction
        record['energy'] = self.energy
        record['weight'] = self.weight

    def __repr__(self) -> str:
        return (f"ParticleState(r={np.round(self.position, 3).tolist()} cm, "
                f"u={np.round(self.direction, 4).tolist()}, "
                f"E={self.energy:.4g} MeV, w={self.weight:.4g})")


class StateArray:
    """Storage for a batch of sampled states."""

    def __init__(self, n_states: int):
        """
        Parameters:
            n_states: Number of states to allocate
        """
        if n_states < 0:
            raise ValueError(f"n_states must be >= 0, got {n_states}")
        self.states = np.zeros(n_states, dtype=STATE_DTYPE)
        self.n_states = n_states

    @classmethod
    def wrap(cls, states: np.ndarray) -> "StateArray":
        """Wrap an existing STATE_DTYPE array without copying."""
        if states.dtype != STATE_DTYPE:
            raise ValueError(f"Expected STATE_DTYPE array, got {states.dtype}")
        batch = cls.__new__(cls)
        batch.states = states
        batch.n_states = len(states)
        return batch

    def __len__(self) -> int:
        return self.n_states

    def __getitem__(self, index: int) -> ParticleState:
        return ParticleState.from_record(self.states[index])

    @property
    def positions(self) -> np.ndarray:
        return self.states['position']

    @property
    def directions(self) -> np.ndarray:
        return self.states['direction']

    @property
    def energies(self) -> np.ndarray:
        return self.states['energy']

    @property
    def weights(self) -> np.ndarray:
        return self.states['weight']

    def get_statistics(self) -> dict:
        """Get summary statistics of the batch."""
        energies = self.states['energy']
        weights = self.states['weight']
        empty = len(energies) == 0

        return {
            'n_total': self.n_states,
            'mean_energy': 0.0 if empty else float(np.mean(energies)),
            'min_energy': 0.0 if empty else float(np.min(energies)),
            'max_energy': 0.0 if empty else float(np.max(energies)),
            'mean_weight': 0.0 if empty else float(np.mean(weights)),
            'sum_weight': float(np.sum(weights)),
        }

    def __repr__(self) -> str:
        stats = self.get_statistics()
        return (f"StateArray(n={stats['n_total']}, "
                f"<E>={stats['mean_energy']:.3f} MeV, "
                f"<w>={stats['mean_weight']:.4g})")
