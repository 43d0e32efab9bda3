"""CropAI feature modules."""
