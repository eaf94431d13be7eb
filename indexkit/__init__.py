"""
indexkit - document extraction and search-corpus toolkit.

This package converts slide decks (.pptx), PDFs and Markdown files into
normalized records, writes their embedded media to disk, and persists the
records as a search-index corpus that can be merged, validated and published.
"""

__version__ = "1.0.0"
__author__ = "indexkit maintainers"
