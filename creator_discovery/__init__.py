"""Creator discovery: filter compilation, paginated fetch and normalization."""

__version__ = "1.0.0"
