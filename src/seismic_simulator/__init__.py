"""
Seismic Twin Simulator package.

We keep this __init__ lightweight on purpose so that
`import seismic_simulator` and `seismic-sim --help` work
without pulling in the numerical engine.
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("seismic-twin-simulator")
except PackageNotFoundError:  # during editable installs
    __version__ = "0.0.0"

__all__ = ["__version__"]
