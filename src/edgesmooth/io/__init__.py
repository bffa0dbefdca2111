"""Image file input/output."""
