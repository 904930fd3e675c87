"""HTTP and WebSocket surface (FastAPI)."""
