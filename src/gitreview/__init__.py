"""gitreview — repository introspection and diff engine for code review."""

__version__ = "0.1.0"
