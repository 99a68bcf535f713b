"""Domain records, errors and pure membership rules."""
