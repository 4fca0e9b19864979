"""DriftFlow - safety and speed enhancements for SQL migration scripts."""

__version__ = "0.1.0"
