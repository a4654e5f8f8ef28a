"""JSON schemas for persisted and archived records."""
