"""Live push to connected clients."""
