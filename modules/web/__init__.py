"""Web server and REST API."""
