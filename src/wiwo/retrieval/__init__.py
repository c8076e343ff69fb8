"""Remote and local retrieval of activity events."""
