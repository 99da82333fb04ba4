"""
Sample a batch of initial states and write it to HDF5.

Usage:
    python scripts/sample_states.py --mode backward --alpha 0.5 -n 100000 \
        --config source.yaml --out states.h5
"""

import argparse
from pathlib import Path
import sys

# Add parent directory to path to import source_mc
sys.path.insert(0, str(Path(__file__).parent.parent))

from source_mc.config import SourceConfig, load_config
from source_mc.generator.engine import SourceGenerator
from source_mc.io import save_states


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--mode", choices=["forward", "backward"], default="forward")
    parser.add_argument("-n", "--n-states", type=int, default=100000)
    parser.add_argument("--alpha", type=float, default=None,
                        help="Spectrum-branch probability (backward mode)")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--processes", type=int, default=1)
    parser.add_argument("--out", type=Path, default=Path("states.h5"))
    args = parser.parse_args(argv)

    config = load_config(args.config) if args.config else SourceConfig()
    if args.seed is not None:
        config.seed = args.seed
    alpha = args.alpha if args.alpha is not None else config.alpha

    generator = SourceGenerator.from_config(config)
    print(generator)

    source_energies = None
    if args.mode == "forward":
        if args.processes > 1:
            states = generator.sample_forward_parallel(
                args.n_states, args.processes, seed=config.seed, verbose=True)
        else:
            states = generator.sample_forward(args.n_states, verbose=True)
    else:
        if args.processes > 1:
            states, source_energies = generator.sample_backward_parallel(
                alpha, args.n_states, args.processes, seed=config.seed, verbose=True)
        else:
            states, source_energies = generator.sample_backward(
                alpha, args.n_states, verbose=True)

    save_states(args.out, states, generator, source_energies,
                alpha=alpha if args.mode == "backward" else None)
    print(f"✓ Saved: {args.out}")


if __name__ == "__main__":
    main()
