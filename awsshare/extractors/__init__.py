"""Per-tab extractors: pure functions from a parsed snapshot to a partial record."""
