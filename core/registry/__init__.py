"""Plugin registry for camera and persistence providers."""
