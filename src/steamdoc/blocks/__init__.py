"""Markdown block parsing, mutation and indexing."""
