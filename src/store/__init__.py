"""Storage layer.

This module persists deduplicated file content, the bundle registry
snapshot, and assembles bundle archives for download.
"""
