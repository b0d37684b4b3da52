"""Record persistence."""
