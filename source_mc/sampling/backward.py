"""
Backward (biased) source sampling on the detector surface.

States start just outside one of the six detector faces and point into the
detector with a cosine-law angular distribution. The energy is either the
source line energy (probability alpha) or drawn log-uniformly between EMIN
and that line energy. The returned weight undoes all three biases:

    w = 2 S pi                          area x cosine-weighted solid angle
        / alpha                         spectrum branch
        * E ln(E_src / EMIN) / (1-alpha)  log-uniform branch

where 2 S = 2 (dx dy + dy dz + dz dx) [cm²] is the detector surface.
"""

import math

import numpy as np
import numba
from typing import Tuple

from source_mc.core import units
from source_mc.core.errors import InvalidParameter
from source_mc.core.geometry import GeometryExtents
from source_mc.core.spectrum import SpectrumTable
from source_mc.core.state import ParticleState


# Lower bound of the log-uniform energy proposal [MeV]
EMIN = 1.0e-2

# Clearance between the sampled point and the detector face [m]
SURFACE_EPSILON = 1.0 * units.UM


@numba.njit(cache=True)
def select_face(c0: float, c1: float, c2: float, r: float) -> Tuple[int, int]:
    """
    Pick a pair of opposite faces, then one side, from r uniform on [0, c2].

    c0, c1, c2 are the cumulative areas of the face pairs normal to x, y, z.

    Returns:
        (axis, sign): normal axis index and outward side (-1 or +1)
    """
    if r <= c0:
        axis = 0
        c = c0
        delta = c0
    elif r <= c1:
        axis = 1
        c = c1
        delta = c1 - c0
    else:
        # Includes rounding overshoot past c2
        axis = 2
        c = c2
        delta = c2 - c1

    if (c - r) > 0.5 * delta:
        sign = -1
    else:
        sign = 1
    return axis, sign


@numba.njit(fastmath=True, cache=True)
def cosine_direction(axis: int, sign: int, u_cos: float,
                     u_phi: float) -> Tuple[float, float, float]:
    """
    Cosine-law direction pointing into the face with outward normal sign * e_axis.
    """
    cos_theta = np.sqrt(u_cos)
    sin_theta = np.sqrt(1.0 - u_cos)
    phi = 2.0 * np.pi * u_phi

    d = np.empty(3)
    d[(axis + 1) % 3] = -sign * sin_theta * np.cos(phi)
    d[(axis + 2) % 3] = -sign * sin_theta * np.sin(phi)
    d[axis] = -sign * cos_theta
    return d[0], d[1], d[2]


class BackwardSampler:
    """
    Importance sampler of initial states on the detector boundary.

    Usage:
        sampler = BackwardSampler(GeometryExtents.default(), SpectrumTable.default())
        state, source_energy = sampler.sample(0.5, np.random.default_rng(1))
    """

    def __init__(self, extents: GeometryExtents, spectrum: SpectrumTable,
                 emin: float = EMIN):
        """
        Parameters:
            extents: Box geometry
            spectrum: Source emission spectrum
            emin: Lower bound of the log-uniform energy proposal [MeV]

        Raises:
            InvalidParameter: emin not positive

        A spectrum with lines below emin is accepted here; sampling from it
        raises (see check_spectrum).
        """
        if not (emin > 0.0 and math.isfinite(emin)):
            raise InvalidParameter(f"emin must be positive, got {emin}")

        self.extents = extents
        self.spectrum = spectrum
        self.emin = float(emin)
        self._lowest_line = float(np.min(spectrum.energies))

        size = tuple(float(s) for s in extents.detector_size)
        self._size = size
        self._center = (0.0, 0.0, extents.detector_offset)

        # Cumulative areas of the face pairs normal to x, y, z [m²]
        cumulative = []
        s = 0.0
        for axis in range(3):
            s += size[(axis + 1) % 3] * size[(axis + 2) % 3]
            cumulative.append(s)
        self._cumulative = tuple(cumulative)

        self.base_weight = 2.0 * units.to_cm2(self._cumulative[2]) * math.pi

    @staticmethod
    def check_alpha(alpha: float) -> float:
        """Validate the spectrum-branch probability, which must lie in (0, 1)."""
        alpha = float(alpha)
        if not (0.0 < alpha < 1.0):
            raise InvalidParameter(f"alpha must lie strictly in (0, 1), got {alpha}")
        return alpha

    def face_areas(self) -> np.ndarray:
        """Areas [m²] of the faces ordered -x, +x, -y, +y, -z, +z."""
        c0, c1, c2 = self._cumulative
        return np.repeat(np.array([c0, c1 - c0, c2 - c1]), 2)

    def face_index(self, position_cm) -> np.ndarray:
        """
        Face index (0..5 = -x, +x, -y, +y, -z, +z) of sampled positions [cm].

        Works on a single position or an (n, 3) array.
        """
        position = np.atleast_2d(np.asarray(position_cm, dtype=np.float64))
        center = units.to_cm(np.array(self._center))
        half = units.to_cm(0.5 * np.array(self._size))
        relative = (position - center) / half
        axis = np.argmax(np.abs(relative), axis=1)
        positive = relative[np.arange(len(relative)), axis] > 0.0
        return 2 * axis + positive.astype(np.int64)

    def sample_surface(self, rng) -> Tuple[Tuple[float, float, float], int, int]:
        """
        Area-weighted point [m] just outside the detector surface.

        Returns:
            (position, axis, sign)
        """
        c0, c1, c2 = self._cumulative
        axis, sign = select_face(c0, c1, c2, c2 * rng.random())

        position = [0.0, 0.0, 0.0]
        position[axis] = sign * (0.5 * self._size[axis] + SURFACE_EPSILON) \
            + self._center[axis]
        for i in range(2):
            ii = (axis + i + 1) % 3
            position[ii] = self._size[ii] * (0.5 - rng.random()) + self._center[ii]
        return tuple(position), axis, sign

    def sample_energy(self, alpha: float, source_energy: float,
                      rng) -> Tuple[float, float]:
        """
        Mixture draw of the state energy.

        Returns:
            (energy [MeV], weight factor)
        """
        if rng.random() < alpha:
            return source_energy, 1.0 / alpha

        lnr = math.log(source_energy / self.emin)
        energy = self.emin * math.exp(lnr * rng.random())
        return energy, energy * lnr / (1.0 - alpha)

    def check_spectrum(self):
        """
        Raise InvalidParameter if a spectrum line lies below emin.

        The log-uniform weight E ln(E_src / emin) would turn negative for
        such a line.
        """
        if self._lowest_line < self.emin:
            raise InvalidParameter(
                f"Spectrum lines below emin={self.emin} MeV: "
                f"min energy {self._lowest_line} MeV")

    def _draw(self, alpha: float, rng):
        alpha = self.check_alpha(alpha)
        self.check_spectrum()

        position_m, axis, sign = self.sample_surface(rng)
        position = units.to_cm(position_m)
        direction = cosine_direction(axis, sign, rng.random(), rng.random())

        source_energy = self.spectrum.sample_energy(rng.random())
        energy, factor = self.sample_energy(alpha, source_energy, rng)
        weight = self.base_weight * factor

        return position, direction, energy, weight, source_energy

    def sample(self, alpha: float, rng) -> Tuple[ParticleState, float]:
        """
        Draw one backward state.

        Parameters:
            alpha: Probability of emitting at the source line energy, in (0, 1)
            rng: Uniform random source with a ``random()`` method

        Returns:
            (state, source_energy): state with position [cm], direction,
            energy [MeV] and importance weight; the line energy drawn from
            the true spectrum [MeV]

        Raises:
            InvalidParameter: alpha outside (0, 1), or a spectrum line below emin
        """
        position, direction, energy, weight, source_energy = self._draw(alpha, rng)
        return ParticleState(position, direction, energy, weight), source_energy

    def sample_into(self, record, alpha: float, rng) -> float:
        """Draw one backward state into a STATE_DTYPE record; return the source energy."""
        position, direction, energy, weight, source_energy = self._draw(alpha, rng)
        record['position'] = position
        record['direction'] = direction
        record['energy'] = energy
        record['weight'] = weight
        return source_energy
