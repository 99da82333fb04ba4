"""
Source distributions - plotting example

Samples the reference problem (20 x 20 x 10 m detector in 2 x 2 x 1 km of
air) in both modes and plots:
    - forward: vertical position and cos(theta) distributions
    - backward: energy distribution of both mixture branches and weights

Expected results:
    - forward cos(theta) flat on [-1, 1]
    - backward face fractions 12.5 % (x, y faces) and 25 % (z faces)
    - backward log-branch energies flat in log(E) below each line
"""

import numpy as np
import matplotlib.pyplot as plt
from pathlib import Path
import sys

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from source_mc.generator.engine import SourceGenerator
from source_mc.validation import face_fractions, spectrum_branch_mask


def sample_both_modes(n_states: int = 100000, alpha: float = 0.5, seed: int = 1):
    """
    Sample forward and backward batches.

    Parameters:
        n_states: Number of states per mode
        alpha: Spectrum-branch probability for backward sampling
        seed: Random seed

    Returns:
        generator, forward batch, (backward batch, source energies)
    """
    print(f"\n{'='*70}")
    print(f"Source sampling")
    print(f"{'='*70}")
    print(f"  States per mode: {n_states:,}")
    print(f"  Alpha: {alpha}")
    print(f"{'='*70}\n")

    generator = SourceGenerator(seed=seed)
    forward = generator.sample_forward(n_states, verbose=True)
    backward = generator.sample_backward(alpha, n_states, verbose=True)
    return generator, forward, backward


def plot_distributions(generator, forward, backward, save_path=None):
    """
    Plot forward and backward distributions on a 2 x 2 grid.

    Parameters:
        generator: SourceGenerator used for sampling
        forward: Forward StateArray
        backward: (StateArray, source energies)
        save_path: Path to save figure (optional)
    """
    states, source_energies = backward
    line = spectrum_branch_mask(states, source_energies)

    fig, axes = plt.subplots(2, 2, figsize=(12, 9))

    ax = axes[0, 0]
    ax.hist(forward.positions[:, 2] / 100.0, bins=100, color='steelblue')
    ax.axvline(generator.extents.detector_offset, color='r', linestyle='--',
               label='Detector centre')
    ax.set_xlabel('z [m]')
    ax.set_ylabel('States')
    ax.set_title('Forward: vertical position')
    ax.legend()

    ax = axes[0, 1]
    ax.hist(forward.directions[:, 2], bins=50, color='steelblue')
    ax.set_xlabel(r'cos$\theta$')
    ax.set_title('Forward: direction')

    ax = axes[1, 0]
    bins = np.logspace(np.log10(generator.emin), np.log10(3.0), 120)
    ax.hist(states.energies[~line], bins=bins, color='darkorange', alpha=0.7,
            label='Log-uniform branch')
    ax.hist(states.energies[line], bins=bins, color='k', histtype='step',
            label='Spectrum branch')
    ax.set_xscale('log')
    ax.set_xlabel('Energy [MeV]')
    ax.set_title('Backward: energy')
    ax.legend()

    ax = axes[1, 1]
    observed, expected, pvalue = face_fractions(states, generator.backward)
    labels = ['-x', '+x', '-y', '+y', '-z', '+z']
    x = np.arange(6)
    ax.bar(x - 0.2, observed, width=0.4, label='Sampled')
    ax.bar(x + 0.2, expected, width=0.4, label='Area fraction')
    ax.set_xticks(x)
    ax.set_xticklabels(labels)
    ax.set_title(f'Backward: faces (chi² p={pvalue:.2f})')
    ax.legend()

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        print(f"Figure saved: {save_path}")

    return fig


if __name__ == "__main__":
    generator, forward, backward = sample_both_modes()
    plot_distributions(generator, forward, backward,
                       save_path='source_distributions.png')
    plt.show()
