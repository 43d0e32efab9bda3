"""Image upload and analysis status tracking."""
