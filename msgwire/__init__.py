"""MessagePack wire-format reading, extensions, numbers, files and JSON conversion."""

__version__ = "0.1.0"

__all__ = ["errors", "extension", "files", "jsonconv", "number", "reader", "spec", "values"]