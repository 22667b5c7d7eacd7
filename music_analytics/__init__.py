"""
Music Store Analytics

Read-only business reports (top customers, genre popularity, revenue by
country, ...) over an immutable snapshot of a digital music store database.
"""

__version__ = "1.0.0"
