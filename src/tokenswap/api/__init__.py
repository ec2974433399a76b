"""Read-only HTTP API."""
