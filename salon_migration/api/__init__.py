"""HTTP API for running imports from the web dashboard."""
