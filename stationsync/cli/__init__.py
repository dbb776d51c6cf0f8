"""Command-line interface for stationsync."""
