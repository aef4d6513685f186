"""Pydantic data models for steamdoc."""
