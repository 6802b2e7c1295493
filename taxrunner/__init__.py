"""Tax Runner daily drop server."""
