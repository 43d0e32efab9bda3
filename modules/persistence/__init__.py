"""Persistence gateways."""
