"""
Test parallel sampling implementation.

Validates:
1. Reproducibility - same (seed, n_processes) gives identical batches
2. Performance - measures speedup on multiple cores
"""

import numpy as np
import time
from multiprocessing import cpu_count

from source_mc.generator.engine import SourceGenerator


def check_parallel_reproducibility():
    """Parallel batches with the same seed must be identical."""
    print("="*70)
    print("TEST 1: Parallel Reproducibility")
    print("="*70)

    generator = SourceGenerator(seed=0)
    a, ea = generator.sample_backward_parallel(0.5, 20000, n_processes=4, seed=123)
    b, eb = generator.sample_backward_parallel(0.5, 20000, n_processes=4, seed=123)

    same = np.array_equal(a.states, b.states) and np.array_equal(ea, eb)
    print(f"  Identical batches: {same}")
    return same


def measure_parallel_speedup(n_states=200000, n_processes=None):
    """Compare serial and parallel forward sampling throughput."""
    if n_processes is None:
        n_processes = cpu_count()

    print("\n" + "="*70)
    print("TEST 2: Parallel Speedup")
    print("="*70)

    generator = SourceGenerator(seed=0)
    generator.sample_forward(10)  # JIT warm-up

    start = time.time()
    generator.sample_forward(n_states)
    time_serial = time.time() - start

    start = time.time()
    generator.sample_forward_parallel(n_states, n_processes=n_processes, seed=1)
    time_parallel = time.time() - start

    print(f"\nResults:")
    print(f"  Serial:   {time_serial:.2f}s")
    print(f"  Parallel: {time_parallel:.2f}s on {n_processes} processes")
    print(f"  Speedup:  {time_serial/time_parallel:.2f}x")
    return time_serial / time_parallel


if __name__ == "__main__":
    ok = check_parallel_reproducibility()
    measure_parallel_speedup()
    print("\n" + "="*70)
    print("PASSED ✓" if ok else "FAILED ✗")
    print("="*70)
