"""Concrete adapters for the interfaces in :mod:`docqa.interfaces`."""
