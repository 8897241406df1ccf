"""Service wiring for the API."""
