"""Team roster."""
