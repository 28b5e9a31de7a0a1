"""Scaffold a starter app, run its dev server and open it once it is up."""

__version__ = "0.1.0"
