"""
Indexing tools for GuessFS.

This module contains the path filter, the filesystem indexer and index
snapshot storage.
"""
