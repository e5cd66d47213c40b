"""Documentation question answering with hybrid retrieval."""

__version__ = "0.1.0"
