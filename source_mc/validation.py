"""
Statistical self-checks of sampled source distributions.

These functions compare a sampled batch with the distribution it should
follow. They are used by the test-suite and by examples/scripts to validate
a configuration before feeding states to the transport engine.
"""

from __future__ import annotations

from typing import Dict, Tuple

import numpy as np
from scipy import stats

from source_mc.core import units
from source_mc.core.spectrum import SpectrumTable
from source_mc.core.state import StateArray
from source_mc.core.geometry import GeometryExtents
from source_mc.sampling.backward import BackwardSampler


def validate_cdf(spectrum: SpectrumTable, atol: float = 1e-12) -> Tuple[bool, str]:
    """Check that the spectrum CDF is non-decreasing and ends at 1."""
    cdf = spectrum.cdf
    errors = []
    if np.any(np.diff(cdf) < 0.0):
        errors.append("CDF decreases")
    if abs(cdf[-1] - 1.0) > atol:
        errors.append(f"CDF ends at {cdf[-1]!r}")
    if errors:
        return False, "Spectrum: " + "; ".join(errors)
    return True, f"Spectrum: Valid ({len(spectrum)} lines)"


def validate_forward_containment(states: StateArray,
                                 extents: GeometryExtents) -> Tuple[bool, str]:
    """Check that forward positions lie in the air box and outside the detector."""
    position = states.positions / units.M_TO_CM
    z_center = np.array([0.0, 0.0, extents.air_offset])

    in_air = np.all(np.abs(position - z_center) <= 0.5 * extents.air_size, axis=1)
    d_center = extents.detector_center
    in_detector = np.all(np.abs(position - d_center) <= 0.5 * extents.detector_size, axis=1)

    errors = []
    if not np.all(in_air):
        errors.append(f"{np.sum(~in_air)} states outside the air")
    if np.any(in_detector):
        errors.append(f"{np.sum(in_detector)} states inside the detector")
    if errors:
        return False, "Forward positions: " + "; ".join(errors)
    return True, f"Forward positions: Valid ({len(states)} states)"


def direction_norm_error(states: StateArray) -> float:
    """Largest deviation of |direction| from 1."""
    if len(states) == 0:
        return 0.0
    return float(np.max(np.abs(np.linalg.norm(states.directions, axis=1) - 1.0)))


def isotropy_pvalue(states: StateArray) -> float:
    """KS p-value of cos(theta) = uz against the uniform law on [-1, 1]."""
    return float(stats.kstest(states.directions[:, 2], 'uniform', args=(-1.0, 2.0)).pvalue)


def face_fractions(states: StateArray,
                   sampler: BackwardSampler) -> Tuple[np.ndarray, np.ndarray, float]:
    """
    Compare per-face counts with area-proportional expectations.

    Returns:
        (observed fractions, expected fractions, chi-square p-value), faces
        ordered -x, +x, -y, +y, -z, +z
    """
    faces = sampler.face_index(states.positions)
    counts = np.bincount(faces, minlength=6)
    areas = sampler.face_areas()
    expected = areas / np.sum(areas)
    pvalue = stats.chisquare(counts, expected * np.sum(counts)).pvalue
    return counts / np.sum(counts), expected, float(pvalue)


def spectrum_branch_mask(states: StateArray, source_energies: np.ndarray) -> np.ndarray:
    """
    States emitted at their source energy (spectrum branch).

    A line at exactly emin makes the log-uniform branch collapse onto the
    line energy, so those states always test True here; see mixture_fraction.
    """
    return states.energies == source_energies[:len(states)]


def mixture_fraction(states: StateArray, source_energies: np.ndarray,
                     emin: float) -> Tuple[float, int]:
    """
    Fraction of spectrum-branch states among those whose branch is decidable.

    States with a source energy at (or below) emin are left out.

    Returns:
        (fraction, number of states counted)
    """
    source = source_energies[:len(states)]
    decidable = source > emin
    n = int(np.sum(decidable))
    if n == 0:
        return float('nan'), 0
    line = spectrum_branch_mask(states, source_energies)
    return float(np.mean(line[decidable])), n


def backward_consistency(states: StateArray, source_energies: np.ndarray,
                         sampler: BackwardSampler,
                         e_low: float, e_high: float,
                         e_cut: float) -> Dict[str, Tuple[float, float, float]]:
    """
    Weighted estimators of a backward batch against their exact values.

    Both estimators are normalised by the geometric factor 2 S pi:

    * 'line': E[w 1{spectrum branch} 1{e_low <= E <= e_high}] equals the
      true-spectrum probability of that energy range;
    * 'continuum': E[w 1{log branch} 1{E <= e_cut}] equals
      sum_k p_k max(0, min(E_k, e_cut) - emin), the uniform-in-energy
      integral the log-uniform proposal is corrected to.

    Returns:
        {name: (estimate, standard error, exact value)}
    """
    spectrum = sampler.spectrum
    weights = states.weights / sampler.base_weight
    energies = states.energies
    line = spectrum_branch_mask(states, source_energies)

    line_scores = weights * (line & (energies >= e_low) & (energies <= e_high))
    continuum_scores = weights * (~line & (energies <= e_cut))

    emin = sampler.emin
    exact_continuum = float(np.sum(
        spectrum.probabilities * np.maximum(0.0, np.minimum(spectrum.energies, e_cut) - emin)))

    n = len(states)

    def _estimate(scores):
        return float(np.mean(scores)), float(np.std(scores, ddof=1) / np.sqrt(n))

    return {
        'line': (*_estimate(line_scores), spectrum.probability_between(e_low, e_high)),
        'continuum': (*_estimate(continuum_scores), exact_continuum),
    }


def run_validation(generator, n_states: int = 100_000, alpha: float = 0.5,
                   verbose: bool = True) -> Tuple[bool, list]:
    """
    Sample both modes with `generator` and run every check.

    Returns:
        (success, messages)
    """
    messages = []
    success = True

    ok, msg = validate_cdf(generator.spectrum)
    success &= ok
    messages.append(msg)

    forward = generator.sample_forward(n_states)
    ok, msg = validate_forward_containment(forward, generator.extents)
    success &= ok
    messages.append(msg)

    norm_error = direction_norm_error(forward)
    pvalue = isotropy_pvalue(forward)
    ok = norm_error < 1e-12 and pvalue > 1e-3
    success &= ok
    messages.append(f"Forward isotropy: |u|-1 <= {norm_error:.1e}, KS p={pvalue:.3f}")

    backward, source_energies = generator.sample_backward(alpha, n_states)
    _, _, face_p = face_fractions(backward, generator.backward)
    ok = face_p > 1e-3
    success &= ok
    messages.append(f"Backward faces: chi2 p={face_p:.3f}")

    fraction, counted = mixture_fraction(backward, source_energies, generator.emin)
    if counted > 0:
        sigma = np.sqrt(alpha * (1.0 - alpha) / counted)
        ok = abs(fraction - alpha) < 5.0 * sigma
    else:
        ok = True
    success &= ok
    messages.append(f"Backward mixture: {fraction:.4f} at source energy (alpha={alpha})")

    energies = generator.spectrum.energies
    e_mid = float(np.median(energies))
    results = backward_consistency(backward, source_energies, generator.backward,
                                   float(energies.min()), e_mid, e_mid)
    for name, (estimate, error, exact) in results.items():
        ok = abs(estimate - exact) < 5.0 * error + 1e-12
        success &= ok
        messages.append(f"Backward {name}: {estimate:.5f} +- {error:.5f} (exact {exact:.5f})")

    if verbose:
        print("\n" + "="*70)
        print("Source validation")
        print("="*70)
        for msg in messages:
            print(f"  {msg}")
        print(f"\n  {'ALL CHECKS PASSED ✓' if success else 'SOME CHECKS FAILED ✗'}")

    return bool(success), messages
