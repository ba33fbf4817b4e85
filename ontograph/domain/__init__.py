"""Pure domain models and the error taxonomy."""
