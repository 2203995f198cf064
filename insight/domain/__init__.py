"""Pure domain logic: query construction and record mapping (no I/O)."""
