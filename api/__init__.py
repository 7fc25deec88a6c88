"""Alert relay service."""
