"""Request-layer helpers for the control-plane API client."""
