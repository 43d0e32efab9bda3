"""Core interfaces, models and infrastructure for CropAI."""
