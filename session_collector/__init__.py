"""Session Collector - concurrent collection of AI assistant sessions."""

__version__ = "0.1.0"
