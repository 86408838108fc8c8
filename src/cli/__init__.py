"""CLI tools for the enrichment clients.

- ``python -m src.cli.prefetch lastfm`` -- prefetch Last.fm artist info into
  a JSON snapshot.
- ``python -m src.cli.prefetch geocoding`` -- prefetch reverse-geocoded city
  names into a JSON snapshot.
"""
