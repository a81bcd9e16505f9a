"""Command line interface for sheetbase."""
