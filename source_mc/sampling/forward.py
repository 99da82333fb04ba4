"""
Forward (analog) source sampling.

States are distributed as the physical source: uniform in the air volume
outside the detector, isotropic in direction, with energies drawn from the
emission spectrum. Every state carries unit weight.
"""

import numpy as np
import numba
from typing import Tuple

from source_mc.core import units
from source_mc.core.geometry import GeometryExtents, outside_box
from source_mc.core.spectrum import SpectrumTable
from source_mc.core.state import ParticleState


@numba.njit(fastmath=True, cache=True)
def isotropic_direction(u_cos: float, u_phi: float) -> Tuple[float, float, float]:
    """
    Map two uniform variates to a direction uniform on the unit sphere.

    cos(theta) = 2u - 1 is uniform on [-1, 1], phi = 2 pi u'.
    """
    cos_theta = 2.0 * u_cos - 1.0
    sin_theta = np.sqrt(max(0.0, 1.0 - cos_theta * cos_theta))
    phi = 2.0 * np.pi * u_phi
    return sin_theta * np.cos(phi), sin_theta * np.sin(phi), cos_theta


class ForwardSampler:
    """
    Unbiased sampler of initial states in the air surrounding the detector.

    Usage:
        sampler = ForwardSampler(GeometryExtents.default(), SpectrumTable.default())
        state = sampler.sample(np.random.default_rng(1))
    """

    def __init__(self, extents: GeometryExtents, spectrum: SpectrumTable):
        self.extents = extents
        self.spectrum = spectrum

        # Cached as plain floats for the rejection loop [m]
        self._air = tuple(float(s) for s in extents.air_size)
        self._air_offset = extents.air_offset
        self._half_det = tuple(0.5 * float(s) for s in extents.detector_size)
        self._det_offset = extents.detector_offset

    def sample_direction(self, rng) -> Tuple[float, float, float]:
        return isotropic_direction(rng.random(), rng.random())

    def sample_position(self, rng) -> Tuple[float, float, float]:
        """
        Rejection-sample a point [m] in the air box, outside the detector.

        Points on the detector boundary count as inside and are rejected.
        The loop is uncapped; the geometry guarantees a detector smaller than
        the air box, so it ends after a geometric number of attempts.
        """
        ax, ay, az = self._air
        hx, hy, hz = self._half_det
        while True:
            x = ax * (0.5 - rng.random())
            y = ay * (0.5 - rng.random())
            z = az * (0.5 - rng.random()) + self._air_offset
            if outside_box(x, y, z, hx, hy, hz, self._det_offset):
                return x, y, z

    def _draw(self, rng):
        direction = self.sample_direction(rng)
        position = units.to_cm(self.sample_position(rng))
        energy = self.spectrum.sample_energy(rng.random())
        return position, direction, energy

    def sample(self, rng) -> ParticleState:
        """
        Draw one forward state.

        Parameters:
            rng: Uniform random source with a ``random()`` method
                 (e.g. numpy.random.Generator)

        Returns:
            ParticleState with position [cm], unit direction, energy [MeV]
            and weight 1
        """
        position, direction, energy = self._draw(rng)
        return ParticleState(position, direction, energy, weight=1.0)

    def sample_into(self, record, rng):
        """Draw one forward state directly into a STATE_DTYPE record."""
        position, direction, energy = self._draw(rng)
        record['position'] = position
        record['direction'] = direction
        record['energy'] = energy
        record['weight'] = 1.0

    def acceptance_probability(self) -> float:
        """Probability that a single point drawn in the air is accepted."""
        return self.extents.source_volume / self.extents.air_volume
