# backend/labstock/__init__.py
"""
Lab Stock: inventory tracking for laboratory chemicals, glassware,
instruments and miscellaneous items.

The application lives in labstock/apps/*; labstock.main builds the API.
"""

__version__ = "1.0.0"
