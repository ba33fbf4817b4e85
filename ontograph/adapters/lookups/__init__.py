"""Entity lookup adapters."""
