"""chatshot - screenshots of web pages and live chat messages."""

__version__ = "1.0.0"
