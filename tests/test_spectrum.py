import numpy as np
import pytest

from source_mc.core.errors import InvalidSpectrum
from source_mc.core.spectrum import RADON_PROGENY_LINES, SpectrumTable, search_cdf


class TestNormalisation:
    """CDF construction"""

    def test_cdf_ends_at_one(self, default_spectrum):
        assert default_spectrum.cdf[-1] == 1.0
        assert np.all(np.diff(default_spectrum.cdf) >= 0.0)

    def test_partial_sums_divided_by_total(self):
        spectrum = SpectrumTable([(0.5, 2.0), (1.5, 1.0), (1.0, 5.0)])
        assert spectrum.cdf == pytest.approx([0.25, 0.375, 1.0])

    def test_table_order_is_kept(self):
        spectrum = SpectrumTable([(2.0, 1.0), (0.5, 1.0), (1.0, 2.0)])
        assert spectrum.energies.tolist() == [2.0, 0.5, 1.0]

    def test_probabilities_recovered(self, two_lines):
        assert two_lines.probabilities == pytest.approx([0.25, 0.75])
        assert two_lines.mean_energy == pytest.approx(1.75)

    def test_default_table(self, default_spectrum):
        assert len(default_spectrum) == len(RADON_PROGENY_LINES)
        assert default_spectrum.energies.min() > 1e-2

    def test_from_arrays(self):
        spectrum = SpectrumTable.from_arrays([1.0, 2.0], [1.0, 1.0])
        assert spectrum.cdf == pytest.approx([0.5, 1.0])

    def test_tables_are_read_only(self, two_lines):
        with pytest.raises(ValueError):
            two_lines.cdf[0] = 0.5


class TestInvalidSpectrum:
    """Construction failures"""

    def test_empty(self):
        with pytest.raises(InvalidSpectrum):
            SpectrumTable([])

    def test_zero_total(self):
        with pytest.raises(InvalidSpectrum):
            SpectrumTable([(1.0, 0.0), (2.0, 0.0)])

    def test_negative_intensity(self):
        with pytest.raises(InvalidSpectrum):
            SpectrumTable([(1.0, 2.0), (2.0, -1.0)])

    def test_non_positive_energy(self):
        with pytest.raises(InvalidSpectrum):
            SpectrumTable([(0.0, 1.0)])

    def test_mismatched_arrays(self):
        with pytest.raises(InvalidSpectrum):
            SpectrumTable.from_arrays([1.0, 2.0], [1.0])

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            SpectrumTable([])


class TestSampleEnergy:
    """Inverse-transform lookup"""

    def test_first_entry_at_or_above_u(self, two_lines):
        assert two_lines.sample_energy(0.0) == 1.0
        assert two_lines.sample_energy(0.25) == 1.0
        assert two_lines.sample_energy(0.2500001) == 2.0
        assert two_lines.sample_energy(0.999) == 2.0

    def test_overshoot_returns_last(self, two_lines):
        assert two_lines.sample_energy(1.5) == 2.0

    def test_zero_intensity_tie_goes_to_earlier_line(self):
        spectrum = SpectrumTable([(1.0, 1.0), (3.0, 0.0), (2.0, 1.0)])
        assert spectrum.cdf == pytest.approx([0.5, 0.5, 1.0])
        assert spectrum.sample_energy(0.5) == 1.0
        assert spectrum.sample_energy(0.6) == 2.0

    def test_search_kernel(self):
        cdf = np.array([0.1, 0.4, 1.0])
        assert search_cdf(cdf, 0.05) == 0
        assert search_cdf(cdf, 0.4) == 1
        assert search_cdf(cdf, 2.0) == 2

    def test_sampled_frequencies(self, two_lines, rng):
        energies = np.array([two_lines.sample_energy(rng.random()) for _ in range(20000)])
        assert np.mean(energies == 1.0) == pytest.approx(0.25, abs=0.015)

    def test_probability_between(self, default_spectrum):
        assert default_spectrum.probability_between(0.0, 10.0) == pytest.approx(1.0)
        assert default_spectrum.probability_between(0.6, 0.61) == pytest.approx(
            default_spectrum.probabilities[3])
