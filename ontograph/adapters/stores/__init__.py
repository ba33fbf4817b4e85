"""Relation graph storage adapters."""
