"""Image analysis."""
