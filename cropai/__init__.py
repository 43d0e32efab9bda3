"""CropAI - crop disease detection from camera stills and selected images."""

__version__ = "0.1.0"
