"""Types shared between services."""
