"""One-off maintenance tools."""
