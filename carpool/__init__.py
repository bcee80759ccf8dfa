"""Airport carpool coordination service."""
