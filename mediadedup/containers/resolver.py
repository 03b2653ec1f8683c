"""Maps filesystem paths to containers and containers back to mount points."""

import logging
from dataclasses import dataclass
from pathlib import Path

from mediadedup.containers.devices import (
    ContainerIdentity,
    DeviceInfo,
    DeviceInfoError,
    LsblkDeviceInfo,
)
from mediadedup.database.models import Container

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContainerLocation:
    """A container identity together with where it is mounted right now."""

    identity: ContainerIdentity
    mount_point: Path


class ContainerResolver:
    """Resolves container identities, caching them per mount point for one run."""

    def __init__(self, devices: DeviceInfo | None = None) -> None:
        self.devices = devices or LsblkDeviceInfo()
        self._cache: dict[Path, ContainerIdentity] = {}

    def locate(self, path: Path) -> ContainerLocation:
        """Return identity and mount point for ``path``. Raises DeviceInfoError."""
        mount_point = self.devices.mount_point_for(path)
        return ContainerLocation(self._identify(mount_point), mount_point)

    def resolve(self, path: Path) -> ContainerIdentity:
        return self.locate(path).identity

    def find_mount(self, container: Container | ContainerIdentity) -> Path | None:
        """Return the current mount point of a container, or None if not attached."""
        wanted = ContainerIdentity(container.partition_id, container.disk_id)
        for mount_point in self.devices.list_mount_points():
            try:
                identity = self._identify(mount_point)
            except DeviceInfoError as e:
                logger.debug("Skipping unidentifiable mount %s: %s", mount_point, e)
                continue
            if identity == wanted:
                return mount_point
        return None

    def clear_cache(self) -> None:
        """Forget cached identities, e.g. after devices were reconnected."""
        self._cache.clear()

    def _identify(self, mount_point: Path) -> ContainerIdentity:
        if mount_point not in self._cache:
            self._cache[mount_point] = self.devices.identify(mount_point)
        return self._cache[mount_point]
