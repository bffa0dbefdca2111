"""EdgeSmooth: weighted least squares edge-preserving smoothing."""

__version__ = "0.1.0"
