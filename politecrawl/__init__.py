"""
politecrawl

A bounded, polite, concurrent breadth-first web crawler.
"""

__version__ = "1.0.0"
__description__ = "A bounded, polite, concurrent breadth-first web crawler"
