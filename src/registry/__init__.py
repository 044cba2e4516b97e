"""Repository format readers."""
