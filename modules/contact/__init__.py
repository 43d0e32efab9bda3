"""Contact form."""
