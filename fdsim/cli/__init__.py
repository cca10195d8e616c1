"""Command-line interface for fdsim."""
