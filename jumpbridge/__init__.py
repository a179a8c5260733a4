"""jumpbridge - editor bridge to the jumper frecency database."""

__version__ = "0.1.0"
