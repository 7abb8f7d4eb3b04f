"""Cache-aside query interception: fingerprinting, serialization, stores, invalidation."""
