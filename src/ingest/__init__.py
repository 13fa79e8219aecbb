"""Bundle ingestion.

This module turns submitted or local files into stored blobs and
registers them as bundles.
"""
