"""Persistence gateway providers."""
