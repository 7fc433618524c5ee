"""Exports & reporting: human-readable reports for parse misses and application results."""
