"""Target declarations for the service-center operations."""

from herald.templates.catalog import CATALOG, default_registry

__all__ = ["CATALOG", "default_registry"]
