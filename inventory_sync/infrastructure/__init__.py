"""Infrastructure layer: remote store adapters."""
