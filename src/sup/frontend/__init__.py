"""Front ends for sup."""
