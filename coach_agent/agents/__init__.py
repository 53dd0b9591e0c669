"""Domain agents built on the agent loop."""
