"""Domain services: cache, store, conversations and the model bridge."""
