"""Container (physical partition) identity resolution."""

from .devices import ContainerIdentity, DeviceInfo, DeviceInfoError, LsblkDeviceInfo
from .resolver import ContainerLocation, ContainerResolver

__all__ = [
    "ContainerIdentity",
    "ContainerLocation",
    "ContainerResolver",
    "DeviceInfo",
    "DeviceInfoError",
    "LsblkDeviceInfo",
]
