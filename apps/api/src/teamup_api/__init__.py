"""TeamUp API - HTTP service for skill verification."""
