"""Geocoding providers."""

from src.providers.geocoding.photon_provider import PhotonProvider

__all__ = ["PhotonProvider"]
