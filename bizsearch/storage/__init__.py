"""
Persisted key-value storage used by the result cache and the query history.
"""
