"""Object storage and upload routing."""
