"""HTTP API for the talent logistics core."""
