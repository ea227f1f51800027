"""Mr. Car Wash staff console: clients, vehicles, services and billing over the REST API."""

__version__ = "0.1.0"
