"""
Location-aware business search and ranking engine.

Responsibilities:
- Retrieve candidate businesses from a directory for free-text queries.
- Score and sort candidates by text match, rating, popularity and distance.
- Merge autocomplete suggestions from history, the directory and a places provider.
- Cache result sets and keep a bounded history of recent searches.
"""
