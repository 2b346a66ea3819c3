"""Version information for :mod:`rdfexplore`."""

__all__ = [
    "VERSION",
]

VERSION = "0.1.0"
