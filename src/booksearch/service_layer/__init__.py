"""Service layer for querying built book indexes."""
