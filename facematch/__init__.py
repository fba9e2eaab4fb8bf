"""Live webcam face matching against a small labelled reference set."""

__version__ = "0.1.0"
