"""Background worker threads for Boxmark."""
