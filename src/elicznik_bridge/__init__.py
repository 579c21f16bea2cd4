"""Bridge to the Tauron e-licznik portal."""

__version__ = "0.1.0"
