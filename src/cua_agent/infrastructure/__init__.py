"""Backends and tools behind the agent loop."""
