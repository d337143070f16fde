"""multiship: per-item shipping for checkouts that ship to several recipients."""

__version__ = "0.1.0"
