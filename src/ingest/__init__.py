"""Raw extract ingestion pipeline.

This module reads bronze extracts and runs every entity stage in
dependency order. It hands validated tables to the store layer.
"""
