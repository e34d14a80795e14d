"""
Top-level package for mobilectl.

This package exposes the main CLI entry point via the
``mobilectl.cli`` module. The changelog engine lives in
:mod:`mobilectl.changelog`.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
