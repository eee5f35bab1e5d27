# Group location sharing client

from locshare.client.client import LocationShareClient
from locshare.common.models import ClientConfig, Coordinates, IdentityOptions

__all__ = [
    "ClientConfig",
    "Coordinates",
    "IdentityOptions",
    "LocationShareClient",
]
