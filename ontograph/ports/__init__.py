"""Ports: the interfaces adapters implement."""
