"""vfpwatch — live console monitor for virtual-filtering rule decisions."""

__version__ = "0.1.0"
