"""
searchmetrics - retention for search-analytics stores.

Purges search metrics (queries, clicks, visitor identifiers, per-query
click counters) older than a cutoff while keeping the remaining rows
referentially consistent.
"""

__version__ = "0.1.0"
