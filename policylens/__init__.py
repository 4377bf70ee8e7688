"""PolicyLens: grounded per-theme comparison of party policy documents."""

__version__ = "0.1.0"
