"""Adapters implementing flatvec ports."""

from flatvec.app.adapters.flat import FlatIndexAdapter

__all__ = ["FlatIndexAdapter"]
