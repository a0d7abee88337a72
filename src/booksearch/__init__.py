"""Build, query and audit static full-text search indexes for documentation books."""

__version__ = "0.3.0"
