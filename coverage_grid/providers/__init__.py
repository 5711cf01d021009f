"""Place-name lookup providers.

Resolve a free-text place query to candidate administrative boundaries.
Each provider implements ``PlaceProvider``; the CLI uses
``NominatimClient``.
"""
