"""Service clients."""
