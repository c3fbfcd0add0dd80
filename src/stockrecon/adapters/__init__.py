"""Adapters binding the domain ports to HTTP, Redis and SQL backends."""
