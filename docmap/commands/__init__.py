"""Command implementations behind the docmap CLI."""
