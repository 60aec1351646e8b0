"""
Geospatial helpers.

Responsibilities:
- Great-circle distance between coordinates, single and batched.
- Radius checks and human-readable distance formatting.
- Access to the user's current location.
"""
