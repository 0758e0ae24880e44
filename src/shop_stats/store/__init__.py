"""Document store adapters: in-memory, Redis, and the callback bridge."""
