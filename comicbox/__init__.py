"""Download web comics and repackage them as CBZ archives."""

__version__ = "0.1.0"
