"""HTTP API for chatshot."""
