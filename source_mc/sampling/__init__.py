"""Sampling module: forward (analog) and backward (biased) samplers."""

from source_mc.sampling.forward import ForwardSampler
from source_mc.sampling.backward import BackwardSampler

__all__ = ["ForwardSampler", "BackwardSampler"]
