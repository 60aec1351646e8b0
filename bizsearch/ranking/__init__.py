"""
Relevance ranking.

Responsibilities:
- Score a business against a query on text match, rating, popularity and distance.
- Apply the post-retrieval filters (rating, distance, price level).
- Sort results by the requested key and order.
"""
