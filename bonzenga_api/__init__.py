"""
Top‑level package for the Home Bonzenga API.

This file makes ``bonzenga_api`` a Python package so that modules
within ``app`` can be imported using fully qualified names like
``bonzenga_api.app.main``.

The package provides no public exports; all functionality lives in
submodules under ``app``.
"""

__all__ = []
