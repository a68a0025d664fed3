"""
Forge deploy client.

Triggers deploy, destroy and reset operations against the World Forge control
plane and follows them to completion by polling deployment status and, where
it applies, instance health.
"""

__version__ = "0.1.0"
