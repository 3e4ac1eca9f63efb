"""Port interfaces for the flatvec application layer.

Callers depend on these protocols, never on concrete implementations.
"""

__all__ = [
    "VectorHit",
    "VectorStorePort",
]

from flatvec.app.ports.vector_store import VectorHit, VectorStorePort
