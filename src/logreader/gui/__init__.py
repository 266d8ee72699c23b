"""Optional Qt integration (requires the ``gui`` extra, i.e. PySide6)."""
