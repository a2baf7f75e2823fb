"""docmap - layout and incremental-update engine for document graphs."""

__version__ = "0.1.0"
