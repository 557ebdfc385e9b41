"""REST API over the historical price service."""
