"""HTTP routes for the mirror API."""
