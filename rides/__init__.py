"""
Rides domain package.

Public API:
- Domain models: RideRequest, Location, SharingPreferences, RideStatus
- Matching entry: find_compatible (see rides.matching)
"""
from .models import Location, RideRequest, RideStatus, SharingPreferences, resolve_sharing_preferences

__all__ = ["RideRequest",
           "Location",
             "SharingPreferences",
               "RideStatus",
                 "resolve_sharing_preferences",
               ]
