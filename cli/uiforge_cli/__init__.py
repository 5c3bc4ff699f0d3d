"""uiforge CLI — stream a generated React component and preview it locally."""

__version__ = "0.1.0"
