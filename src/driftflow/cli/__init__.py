"""DriftFlow CLI package."""
