"""HTTP API for the housing core."""
