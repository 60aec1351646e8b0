"""
Search pipeline and query coordination.

Responsibilities:
- Define the validated data model shared by every component.
- Cache result sets with a TTL and keep a bounded query history.
- Aggregate autocomplete suggestions from several sources.
- Debounce, cancel and sequence overlapping requests so only the newest is applied.
"""
