"""
Place autocomplete.

Responsibilities:
- Define the interface of the external place-autocomplete provider.
- Query the Google Places autocomplete API with a location bias.
"""
