"""
Search analytics: an in-memory event sink and aggregate reporting.
"""
