"""Order lifecycle engine for a delivery kitchen's role panels."""

__version__ = "0.1.0"
