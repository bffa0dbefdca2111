"""Numerical core: image volumes, weight fields, and the sparse solver."""
