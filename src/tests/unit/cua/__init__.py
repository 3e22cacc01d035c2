"""Unit tests for the computer use agent."""
