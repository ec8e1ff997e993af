"""HTTP and WebSocket surface for the role panels."""
