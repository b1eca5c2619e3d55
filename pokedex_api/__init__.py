"""
Top‑level package for the National Pokedex API.

All functionality lives in the ``app`` subpackage, importable with
fully qualified names like ``pokedex_api.app.main``.
"""

__all__ = []
