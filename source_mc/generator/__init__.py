"""Generator module: batch sampling of initial states."""

from source_mc.generator.engine import SourceGenerator

__all__ = ["SourceGenerator"]
