"""Portal clients.

Available clients:
- tauron: Tauron e-licznik client for hourly consumption and generation series
"""

from . import tauron

__all__ = ["tauron"]
