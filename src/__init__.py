"""Read-through query cache for document databases."""
