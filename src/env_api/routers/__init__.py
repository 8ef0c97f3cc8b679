"""HTTP routers for the environment service."""
