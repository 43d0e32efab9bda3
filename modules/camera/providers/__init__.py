"""Camera device providers."""
