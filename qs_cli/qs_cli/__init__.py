"""Command-line interface for the pgqs query settings engine."""
