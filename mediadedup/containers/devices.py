"""Block device identification through findmnt and lsblk."""

import json
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

_TRAILING_NUMBER = re.compile(r"(\d+)$")


class DeviceInfoError(Exception):
    """Raised when the device behind a path cannot be identified."""


@dataclass(frozen=True)
class ContainerIdentity:
    """Stable identity of a partition, independent of its mount point."""

    partition_id: str | None
    disk_id: str


class DeviceInfo(Protocol):
    """Operating system facility exposing volume and disk identifiers."""

    def mount_point_for(self, path: Path) -> Path:
        """Return the mount point of the filesystem containing ``path``."""

    def identify(self, mount_point: Path) -> ContainerIdentity:
        """Return the stable identity of the volume mounted at ``mount_point``."""

    def list_mount_points(self) -> list[Path]:
        """Return the mount points of currently attached block devices."""


class LsblkDeviceInfo:
    """Linux implementation backed by util-linux."""

    PARTITION_COLUMNS = "PATH,TYPE,UUID,PARTUUID,PKNAME"
    DISK_COLUMNS = "PATH,SERIAL,WWN,MODEL,PTUUID"

    def mount_point_for(self, path: Path) -> Path:
        target = _run(["findmnt", "-n", "-o", "TARGET", "-T", str(Path(path).resolve())])
        if not target:
            raise DeviceInfoError(f"Could not find mount point for path: {path}")
        return Path(target)

    def identify(self, mount_point: Path) -> ContainerIdentity:
        device = _run(["findmnt", "-n", "-o", "SOURCE", "-T", str(mount_point)])
        if not device:
            raise DeviceInfoError(f"No device found for path: {mount_point}")

        partition = self._describe(device, self.PARTITION_COLUMNS)
        if partition.get("pkname"):
            disk = self._describe(f"/dev/{partition['pkname']}", self.DISK_COLUMNS)
        else:
            disk = self._describe(device, self.DISK_COLUMNS)

        return ContainerIdentity(
            partition_id=_partition_id(partition),
            disk_id=_disk_id(disk, device),
        )

    def list_mount_points(self) -> list[Path]:
        output = _run(["findmnt", "-J", "-l", "-o", "TARGET,SOURCE"])
        try:
            filesystems = json.loads(output).get("filesystems", []) if output else []
        except json.JSONDecodeError as e:
            raise DeviceInfoError(f"Could not parse findmnt output: {e}") from e

        mounts = []
        for fs in filesystems:
            source = fs.get("source") or ""
            if source.startswith("/dev/") and not source.startswith("/dev/loop"):
                mounts.append(Path(fs["target"]))
        return mounts

    def _describe(self, device: str, columns: str) -> dict:
        output = _run(["lsblk", "-J", "-d", "-n", "-o", columns, device])
        try:
            devices = json.loads(output).get("blockdevices", []) if output else []
        except json.JSONDecodeError as e:
            raise DeviceInfoError(f"Could not parse lsblk output for {device}: {e}") from e
        if not devices:
            raise DeviceInfoError(f"lsblk returned no data for device: {device}")
        return devices[0]


def _run(cmd: list[str]) -> str:
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as e:
        raise DeviceInfoError(f"Could not run {cmd[0]}: {e}") from e
    if result.returncode != 0:
        raise DeviceInfoError(f"{cmd[0]} failed: {result.stderr.strip() or result.returncode}")
    return result.stdout.strip()


def _clean(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip(" .\0")
    return text or None


def _partition_id(partition: dict) -> str | None:
    """Volume UUID, else partition UUID, else parent-disk:partition-number."""
    volume_id = _clean(partition.get("uuid")) or _clean(partition.get("partuuid"))
    if volume_id:
        return volume_id
    parent = _clean(partition.get("pkname"))
    match = _TRAILING_NUMBER.search(partition.get("path") or "")
    number = match.group(1) if match else None
    if parent and number:
        return f"{parent}:{number}"
    return None


def _disk_id(disk: dict, device: str) -> str:
    """Disk serial, else WWN, else model plus partition table id."""
    serial = _clean(disk.get("serial")) or _clean(disk.get("wwn"))
    if serial:
        return serial
    model = _clean(disk.get("model"))
    signature = _clean(disk.get("ptuuid"))
    if signature:
        return f"{model}_{signature}" if model else signature
    raise DeviceInfoError(
        f"Could not determine a disk identifier for device: {device}. "
        "This may be a network share or virtual filesystem."
    )
