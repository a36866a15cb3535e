"""inventory-sync: remote collection synchronization and cascading deletion for inventory data."""

__version__ = "1.0.0"
