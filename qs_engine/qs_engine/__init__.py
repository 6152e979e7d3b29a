"""pgqs engine: query normalisation, fingerprints and per-query settings."""

__version__ = "0.1.0"
