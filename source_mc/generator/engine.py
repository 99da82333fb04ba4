"""
Batch source generation.

Wraps the forward and backward samplers behind the interface used by the
transport driver:
    - sample_forward: fill N analog states
    - sample_backward: fill N weighted states plus their source energies
    - source_volume: normalisation volume of the forward source [cm³]

Each generator owns its random stream. Parallel batches split the work into
chunks with independent streams spawned from one SeedSequence, so results
depend only on (seed, n_processes).
"""

import math

import numpy as np
from tqdm import tqdm
from typing import Optional, Tuple, Union

from source_mc import config as cfg
from source_mc.core import units
from source_mc.core.errors import InvalidParameter
from source_mc.core.geometry import GeometryExtents
from source_mc.core.spectrum import SpectrumTable
from source_mc.core.state import STATE_DTYPE, StateArray
from source_mc.sampling.backward import EMIN, BackwardSampler
from source_mc.sampling.forward import ForwardSampler


# Global generator instance for each worker process
_worker_generator = None

def _init_worker(extents, spectrum, emin):
    """Initialize worker process with a shared generator instance."""
    global _worker_generator
    _worker_generator = SourceGenerator(extents, spectrum, emin=emin)

def _sample_chunk_worker(work_item):
    """
    Worker function for parallel sampling.

    Parameters:
        work_item: Dictionary with mode, alpha, count and seed sequence

    Returns:
        Tuple of (states, source_energies); source_energies is None in
        forward mode
    """
    global _worker_generator

    _worker_generator.rng = np.random.default_rng(work_item['seed'])
    count = work_item['count']

    if work_item['mode'] == 'forward':
        batch = _worker_generator.sample_forward(count)
        return batch.states, None

    batch, source_energies = _worker_generator.sample_backward(work_item['alpha'], count)
    return batch.states, source_energies


def _check_count(count) -> int:
    try:
        valid = math.isfinite(count) and int(count) == count and count >= 0
    except TypeError:
        valid = False
    if not valid:
        raise InvalidParameter(f"count must be a non-negative integer, got {count!r}")
    return int(count)


def _output_states(states: Union[None, StateArray, np.ndarray], count: int) -> StateArray:
    if states is None:
        return StateArray(count)
    if isinstance(states, np.ndarray):
        if states.dtype != STATE_DTYPE:
            raise InvalidParameter(f"Output states must use STATE_DTYPE, got {states.dtype}")
        states = StateArray.wrap(states)
    if len(states) < count:
        raise InvalidParameter(
            f"Output buffer holds {len(states)} states, {count} requested")
    return states


class SourceGenerator:
    """
    Batch generator of initial states for forward and backward Monte Carlo.

    Example:
        generator = SourceGenerator(seed=42)
        states = generator.sample_forward(10000)
        states, source_energies = generator.sample_backward(0.5, 10000)
        volume = generator.source_volume()
    """

    def __init__(self, extents: Optional[GeometryExtents] = None,
                 spectrum: Optional[SpectrumTable] = None,
                 rng: Optional[np.random.Generator] = None,
                 seed: Optional[int] = None, emin: float = EMIN):
        """
        Initialize the generator.

        Parameters:
            extents: Box geometry (reference layout if None)
            spectrum: Emission spectrum (radon progeny lines if None)
            rng: Uniform random source; created from `seed` if None
            seed: Seed for the default random source; None draws OS entropy
            emin: Lower bound of the backward log-uniform proposal [MeV]
        """
        self.extents = extents if extents is not None else GeometryExtents.default()
        self.spectrum = spectrum if spectrum is not None else SpectrumTable.default()
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.emin = emin

        self.forward = ForwardSampler(self.extents, self.spectrum)
        self.backward = BackwardSampler(self.extents, self.spectrum, emin=emin)

    @classmethod
    def from_config(cls, config: cfg.SourceConfig,
                    rng: Optional[np.random.Generator] = None) -> "SourceGenerator":
        """Build a generator from a SourceConfig."""
        return cls(config.build_extents(), config.build_spectrum(),
                   rng=rng, seed=config.seed, emin=config.emin_mev)

    @classmethod
    def from_yaml(cls, path) -> "SourceGenerator":
        """Build a generator from a YAML configuration file."""
        return cls.from_config(cfg.load_config(path))

    def source_volume(self) -> float:
        """Air volume minus detector volume [cm³]."""
        return units.to_cm3(self.extents.source_volume)

    def sample_forward(self, count: int, states: Union[None, StateArray, np.ndarray] = None,
                       verbose: bool = False) -> StateArray:
        """
        Fill `count` states with forward samples, in order.

        Parameters:
            count: Number of states to sample
            states: Output buffer (allocated if None); must hold >= count states
            verbose: Show a progress bar for large batches

        Returns:
            The filled StateArray
        """
        count = _check_count(count)
        batch = _output_states(states, count)

        show = verbose and count >= cfg.PROGRESS_THRESHOLD
        for i in tqdm(range(count), desc="Forward sampling", unit="state", disable=not show):
            self.forward.sample_into(batch.states[i], self.rng)

        if verbose:
            print(f"Sampled {count:,} forward states: {batch}")

        return batch

    def sample_backward(self, alpha: float, count: int,
                        states: Union[None, StateArray, np.ndarray] = None,
                        source_energies: Optional[np.ndarray] = None,
                        verbose: bool = False) -> Tuple[StateArray, np.ndarray]:
        """
        Fill `count` states with backward samples and their source energies.

        Parameters:
            alpha: Probability of the spectrum energy branch, in (0, 1)
            count: Number of states to sample
            states: Output buffer (allocated if None)
            source_energies: Output buffer for source energies [MeV] (allocated if None)
            verbose: Show a progress bar for large batches

        Returns:
            (states, source_energies)

        Raises:
            InvalidParameter: alpha outside (0, 1), a spectrum line below emin
                              or undersized buffers
        """
        alpha = BackwardSampler.check_alpha(alpha)
        self.backward.check_spectrum()
        count = _check_count(count)
        batch = _output_states(states, count)

        if source_energies is None:
            source_energies = np.zeros(count)
        elif len(source_energies) < count:
            raise InvalidParameter(
                f"source_energies holds {len(source_energies)} values, {count} requested")

        show = verbose and count >= cfg.PROGRESS_THRESHOLD
        for i in tqdm(range(count), desc="Backward sampling", unit="state", disable=not show):
            source_energies[i] = self.backward.sample_into(batch.states[i], alpha, self.rng)

        if verbose:
            print(f"Sampled {count:,} backward states (alpha={alpha}): {batch}")

        return batch, source_energies

    def _run_parallel(self, mode: str, alpha: Optional[float], count: int,
                      n_processes: Optional[int], seed: Optional[int], verbose: bool):
        import multiprocessing as mp
        import time

        if n_processes is None:
            n_processes = mp.cpu_count()
        if n_processes < 1:
            raise InvalidParameter(f"n_processes must be >= 1, got {n_processes}")

        if seed is None:
            # Root entropy from the generator stream (53 random bits)
            seed = int(self.rng.random() * 2**53)

        chunk_sizes = [len(c) for c in np.array_split(np.arange(count), n_processes)]
        seeds = np.random.SeedSequence(seed).spawn(n_processes)
        work_items = [
            {'mode': mode, 'alpha': alpha, 'count': size, 'seed': chunk_seed}
            for size, chunk_seed in zip(chunk_sizes, seeds)
        ]

        if verbose:
            print(f"\nParallel {mode} sampling: {count:,} states on {n_processes} processes")

        start_time = time.time()

        with mp.Pool(n_processes, initializer=_init_worker,
                     initargs=(self.extents, self.spectrum, self.emin)) as pool:
            results = pool.map(_sample_chunk_worker, work_items)

        elapsed = time.time() - start_time

        batch = StateArray.wrap(np.concatenate([states for states, _ in results]))

        if verbose:
            rate = count / elapsed if elapsed > 0 else float('inf')
            print(f"  Time: {elapsed:.2f}s")
            print(f"  Rate: {rate:.0f} states/sec")
            print(f"  {batch}")

        if mode == 'forward':
            return batch
        return batch, np.concatenate([energies for _, energies in results])

    def sample_forward_parallel(self, count: int, n_processes: Optional[int] = None,
                                seed: Optional[int] = None,
                                verbose: bool = False) -> StateArray:
        """
        Forward sampling split over worker processes.

        Each chunk uses its own stream from SeedSequence(seed).spawn; the
        result is reproducible for a fixed (seed, n_processes). Without
        `seed`, the root seed is drawn from the generator's own stream, so
        a seeded generator gives reproducible parallel batches too.
        """
        count = _check_count(count)
        return self._run_parallel('forward', None, count, n_processes, seed, verbose)

    def sample_backward_parallel(self, alpha: float, count: int,
                                 n_processes: Optional[int] = None,
                                 seed: Optional[int] = None,
                                 verbose: bool = False) -> Tuple[StateArray, np.ndarray]:
        """Backward sampling split over worker processes (see sample_forward_parallel)."""
        alpha = BackwardSampler.check_alpha(alpha)
        self.backward.check_spectrum()
        count = _check_count(count)
        return self._run_parallel('backward', alpha, count, n_processes, seed, verbose)

    def __repr__(self) -> str:
        return f"SourceGenerator({self.extents}, {self.spectrum})"
