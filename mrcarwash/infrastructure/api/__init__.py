"""REST API access."""

from mrcarwash.infrastructure.api.client import ApiClient, path_segment

__all__ = ["ApiClient", "path_segment"]
