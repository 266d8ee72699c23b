"""Small developer helpers (debug switches)."""
