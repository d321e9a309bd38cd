"""Feed-to-Discord connection management and delivery accounting."""

__version__ = "0.1.0"
