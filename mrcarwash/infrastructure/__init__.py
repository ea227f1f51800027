"""Infrastructure layer: REST API client and repositories."""
