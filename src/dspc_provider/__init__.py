"""DSPC virtual machine reconciler."""

__version__ = "0.1.0"
