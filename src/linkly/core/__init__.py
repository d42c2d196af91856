"""Core infrastructure: configuration, errors, limits, observability."""
