"""CLI tools for taskmark."""
