"""REST and WebSocket API routers."""
