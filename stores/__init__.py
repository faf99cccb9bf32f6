"""
Stores package.

Public API:
- Contracts: RideRequestStore, PoolGroupStore
- In-memory implementations: InMemoryRideRequestStore, InMemoryPoolGroupStore
"""

from .base import PoolGroupStore, RideRequestStore
from .memory import InMemoryPoolGroupStore, InMemoryRideRequestStore

__all__ = [
    "RideRequestStore",
    "PoolGroupStore",
    "InMemoryRideRequestStore",
    "InMemoryPoolGroupStore",
]
