"""Command-line tools for the weather station service."""
