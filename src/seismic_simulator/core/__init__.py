"""Numerical core: ground motion, integrator, drift, memory and the run engine."""
