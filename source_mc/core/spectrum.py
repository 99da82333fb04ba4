"""
Discrete emission spectrum with a normalised cumulative distribution.

The table keeps the order in which lines are given; the CDF runs over that
order (it is not sorted by energy), so ties between equal cumulative values
resolve to the earlier line.
"""

import numpy as np
import numba
from typing import Iterable, Sequence, Tuple

from source_mc.core.errors import InvalidSpectrum


# Main gamma lines of the radon progeny Pb-214 and Bi-214
# (energy [MeV], emission intensity [%]).
RADON_PROGENY_LINES = (
    (0.24192, 7.27),
    (0.29522, 18.42),
    (0.35193, 35.60),
    (0.60932, 45.49),
    (0.76836, 4.89),
    (0.93406, 3.10),
    (1.12029, 14.91),
    (1.23811, 5.83),
    (1.37767, 3.99),
    (1.40798, 2.39),
    (1.72950, 2.88),
    (1.76449, 15.31),
    (1.84742, 2.03),
    (2.20421, 4.91),
    (2.44770, 1.55),
)


@numba.njit(cache=True)
def search_cdf(cdf: np.ndarray, u: float) -> int:
    """
    Index of the first entry with cdf >= u.

    Returns the last index when no entry qualifies (u rounding above 1).
    """
    n = len(cdf)
    for i in range(n):
        if u <= cdf[i]:
            return i
    return n - 1


class SpectrumTable:
    """
    Discrete energy spectrum prepared for inverse-transform sampling.

    Usage:
        spectrum = SpectrumTable([(0.352, 35.6), (0.609, 45.5)])
        energy = spectrum.sample_energy(rng.random())
    """

    def __init__(self, entries: Iterable[Tuple[float, float]]):
        """
        Build the table from (energy, intensity) pairs.

        Parameters:
            entries: Sequence of (energy [MeV], intensity) pairs, in table order.
                     Intensities need not be normalised.

        Raises:
            InvalidSpectrum: empty table, non-positive total intensity,
                             negative intensity or non-positive energy
        """
        pairs = [tuple(entry) for entry in entries]
        if len(pairs) == 0:
            raise InvalidSpectrum("Spectrum table is empty")
        if any(len(pair) != 2 for pair in pairs):
            raise InvalidSpectrum("Spectrum entries must be (energy, intensity) pairs")

        energies = np.array([pair[0] for pair in pairs], dtype=np.float64)
        intensities = np.array([pair[1] for pair in pairs], dtype=np.float64)

        if not (np.all(np.isfinite(energies)) and np.all(np.isfinite(intensities))):
            raise InvalidSpectrum("Spectrum contains non-finite values")
        if np.any(energies <= 0.0):
            raise InvalidSpectrum(f"Energies must be positive, got min {energies.min()}")
        if np.any(intensities < 0.0):
            raise InvalidSpectrum(f"Intensities must be >= 0, got min {intensities.min()}")

        # Normalise to a running sum ending exactly at 1
        cdf = np.cumsum(intensities)
        total = cdf[-1]
        if total <= 0.0:
            raise InvalidSpectrum(f"Total intensity must be positive, got {total}")
        cdf /= total

        energies.setflags(write=False)
        cdf.setflags(write=False)
        self._energies = energies
        self._cdf = cdf

    @classmethod
    def from_arrays(cls, energies: Sequence[float],
                    intensities: Sequence[float]) -> "SpectrumTable":
        """Build from two parallel sequences."""
        energies = np.atleast_1d(np.asarray(energies, dtype=np.float64))
        intensities = np.atleast_1d(np.asarray(intensities, dtype=np.float64))
        if energies.shape != intensities.shape or energies.ndim != 1:
            raise InvalidSpectrum(
                f"Energies and intensities must be 1D of equal length, "
                f"got {energies.shape} and {intensities.shape}")
        return cls(zip(energies, intensities))

    @classmethod
    def default(cls) -> "SpectrumTable":
        """Built-in table: radon progeny (Pb-214, Bi-214) gamma lines."""
        return cls(RADON_PROGENY_LINES)

    @property
    def energies(self) -> np.ndarray:
        """Line energies [MeV], in table order (read-only)."""
        return self._energies

    @property
    def cdf(self) -> np.ndarray:
        """Normalised cumulative intensities (read-only)."""
        return self._cdf

    @property
    def probabilities(self) -> np.ndarray:
        """Per-line emission probabilities."""
        return np.diff(self._cdf, prepend=0.0)

    @property
    def mean_energy(self) -> float:
        """Mean emitted energy [MeV]."""
        return float(np.sum(self.probabilities * self._energies))

    def probability_between(self, e_low: float, e_high: float) -> float:
        """True-spectrum probability that e_low <= E <= e_high."""
        mask = (self._energies >= e_low) & (self._energies <= e_high)
        return float(np.sum(self.probabilities[mask]))

    def sample_energy(self, u: float) -> float:
        """
        Inverse-transform sample of the line energy.

        Parameters:
            u: Uniform variate in [0, 1)

        Returns:
            Energy [MeV] of the first line whose cumulative value is >= u
        """
        return float(self._energies[search_cdf(self._cdf, u)])

    def __len__(self) -> int:
        return len(self._energies)

    def __repr__(self) -> str:
        return (f"SpectrumTable(n={len(self)}, "
                f"E=[{self._energies.min():.3g}, {self._energies.max():.3g}] MeV, "
                f"<E>={self.mean_energy:.3g} MeV)")
