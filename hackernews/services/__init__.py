"""Queue and tree reconstruction services."""
