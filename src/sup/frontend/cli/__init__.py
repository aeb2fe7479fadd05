"""Command-line front end for sup."""
