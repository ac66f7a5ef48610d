"""
fundsearch
----------
In-process full-text search over a mutual-fund catalog, served over Flask.
"""

__version__ = "1.0.0"
