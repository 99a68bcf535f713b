"""Adapters for external systems: the database and spreadsheet files."""
