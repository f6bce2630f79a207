"""HTTP API for dgd."""
