"""Data-quality layer.

This module holds the health-check catalog and the scanner that runs it
against the latest validated entity layer and publishes the issue table.
"""
