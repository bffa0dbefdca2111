"""Stack-based image processing programs."""
