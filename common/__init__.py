"""Shared infrastructure for the Forge deploy client: config, errors, utilities."""
