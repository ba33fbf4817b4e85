"""Services: registry, validation, storage, traversal and the façade."""
