"""Material degradation models."""

from .aging import AgingFactors, CorrosionLevel, apply_aging, compute_aging_factors

__all__ = ["AgingFactors", "CorrosionLevel", "apply_aging", "compute_aging_factors"]
