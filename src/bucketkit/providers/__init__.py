"""Storage provider implementations of the Buckets interface."""
