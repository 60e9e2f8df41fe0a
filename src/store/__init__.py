"""Storage and versioning layer.

This module persists immutable warehouse layer versions and catalogs.
It powers table loading, issue reads, and the exclusion audit for the SDK.
"""
