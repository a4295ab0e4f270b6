"""Flask status API."""
