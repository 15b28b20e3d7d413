"""Pure domain helpers (no I/O)."""
