import numpy as np
import pytest
from scipy import stats

from source_mc.core.state import StateArray
from source_mc.sampling.forward import ForwardSampler, isotropic_direction
from source_mc import validation


class TestScriptedDraws:
    """Exact draw order and arithmetic with a scripted random source"""

    def test_full_sample(self, small_extents, two_lines, scripted):
        rng = scripted([
            0.75, 0.25,              # direction: cos = 0.5, phi = pi/2
            0.375, 0.5, 0.8125,      # (1, 0, -1.5) m: on the detector face, rejected
            0.0, 0.5, 0.5,           # (4, 0, 1) m: accepted
            0.3,                     # energy: second line
        ])
        state = ForwardSampler(small_extents, two_lines).sample(rng)

        assert rng.exhausted
        assert state.position == pytest.approx([400.0, 0.0, 100.0])
        assert state.direction == pytest.approx([0.0, np.sqrt(0.75), 0.5], abs=1e-12)
        assert state.energy == 2.0
        assert state.weight == 1.0

    def test_detector_interior_rejected(self, small_extents, two_lines, scripted):
        rng = scripted([0.5, 0.5, 0.8125] * 3 + [0.5, 0.5, 0.0])
        x, y, z = ForwardSampler(small_extents, two_lines).sample_position(rng)
        assert rng.exhausted
        assert (x, y, z) == (0.0, 0.0, 5.0)

    def test_sample_into_record(self, small_extents, two_lines, scripted):
        batch = StateArray(2)
        rng = scripted([0.5, 0.0, 0.0, 0.0, 0.0, 0.1])
        ForwardSampler(small_extents, two_lines).sample_into(batch.states[1], rng)
        assert batch.positions[1] == pytest.approx([400.0, 400.0, 500.0])
        assert batch.energies[1] == 1.0
        assert batch.weights[1] == 1.0
        assert batch.weights[0] == 0.0

    def test_isotropic_kernel(self):
        ux, uy, uz = isotropic_direction(0.0, 0.0)
        assert (ux, uy, uz) == pytest.approx((0.0, 0.0, -1.0), abs=1e-12)
        ux, uy, uz = isotropic_direction(0.5, 0.0)
        assert (ux, uy, uz) == pytest.approx((1.0, 0.0, 0.0), abs=1e-12)


class TestDistribution:
    """Statistical properties of forward samples"""

    @pytest.fixture
    def batch(self, small_extents, default_spectrum, rng):
        sampler = ForwardSampler(small_extents, default_spectrum)
        batch = StateArray(20000)
        for record in batch.states:
            sampler.sample_into(record, rng)
        return batch

    def test_containment(self, batch, small_extents):
        ok, message = validation.validate_forward_containment(batch, small_extents)
        assert ok, message

    def test_direction_normalised(self, batch):
        assert validation.direction_norm_error(batch) < 1e-12

    def test_cos_theta_uniform(self, batch):
        assert validation.isotropy_pvalue(batch) > 1e-3

    def test_azimuth_uniform(self, batch):
        phi = np.arctan2(batch.directions[:, 1], batch.directions[:, 0])
        assert stats.kstest(phi, 'uniform', args=(-np.pi, 2 * np.pi)).pvalue > 1e-3

    def test_positions_uniform_above_detector(self, batch):
        # Above the detector top (z > -0.5 m) nothing is excluded
        x = batch.positions[:, 0] / 100.0
        z = batch.positions[:, 2] / 100.0
        above = x[z > -0.5]
        assert stats.kstest(above, 'uniform', args=(-4.0, 8.0)).pvalue > 1e-3

    def test_accepted_fraction_excludes_detector(self, batch, small_extents):
        z = batch.positions[:, 2] / 100.0
        x = batch.positions[:, 0] / 100.0
        y = batch.positions[:, 1] / 100.0
        in_column = (np.abs(x) <= 1.0) & (np.abs(y) <= 1.0)
        # Column above/below the detector holds 4 * 6 of the 504 m³ source volume
        assert np.mean(in_column) == pytest.approx(24.0 / 504.0, abs=0.006)
        assert not np.any(in_column & (np.abs(z + 1.5) <= 1.0))

    def test_energies_from_spectrum(self, batch, default_spectrum):
        assert set(np.unique(batch.energies)) <= set(default_spectrum.energies)

    def test_acceptance_probability(self, small_extents, default_spectrum):
        sampler = ForwardSampler(small_extents, default_spectrum)
        assert sampler.acceptance_probability() == pytest.approx(504.0 / 512.0)
