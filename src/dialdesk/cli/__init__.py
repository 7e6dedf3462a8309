"""Command-line interface for DialDesk."""
