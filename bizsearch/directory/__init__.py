"""
Business directory access.

Responsibilities:
- Define the interface of the external business directory.
- Validate and map schemaless directory records into ``BusinessRecord``.
- Provide a pandas-backed directory for local data sets.
"""
