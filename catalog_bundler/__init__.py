"""
catalog-bundler: index categorized data files and download selections of them
as a single archive.
"""

__version__ = "0.1.0"
