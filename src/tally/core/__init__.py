"""Core services for tally: items, identifiers, sync, projects and config."""
