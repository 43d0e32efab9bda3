"""Abstract interfaces and events."""
