"""Scanner backends."""
