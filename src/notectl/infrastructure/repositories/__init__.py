"""Read-side repositories."""
