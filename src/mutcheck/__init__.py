"""mutcheck: naming-convention mutability checking for Go packages."""

__version__ = "0.1.0"
