"""Command-line interface for local bundle operations."""
