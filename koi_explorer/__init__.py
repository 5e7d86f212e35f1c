"""KOI Data Explorer: query, proxy and export Kepler Objects of Interest."""

__version__ = "0.1.0"
