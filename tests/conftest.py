"""Shared fixtures: in-process stand-ins for exiftool, ffprobe and block devices."""

# pylint: disable=redefined-outer-name

import json
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from mediadedup.containers import ContainerIdentity, ContainerResolver, DeviceInfoError
from mediadedup.database import Database
from mediadedup.extractor.exiftool import ExiftoolResult
from mediadedup.extractor.ffprobe import FfprobeResult
from mediadedup.extractor.fingerprint import Fingerprinter
from mediadedup.scanner import Scanner


class FakeExiftool:
    """Reads a photo's tags from JSON stored as the file's content."""

    version = "12.76"

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.written: list[tuple[str, int]] = []

    def extract_batch(self, file_paths: list[str]) -> list[ExiftoolResult]:
        self.calls.append(list(file_paths))
        results = []
        for fp in file_paths:
            try:
                data = json.loads(Path(fp).read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                results.append(ExiftoolResult(fp, {}, str(e)))
                continue
            results.append(ExiftoolResult(fp, {"SourceFile": fp, **data}))
        return results

    def extract_single(self, file_path: str) -> ExiftoolResult:
        return self.extract_batch([file_path])[0]

    def write_file_dates(self, file_path: str, timestamp: int) -> None:
        self.written.append((file_path, timestamp))


class FakeFfprobe:
    """Reads a video's format and streams from JSON stored as the file's content."""

    def probe(self, file_path: str) -> FfprobeResult:
        try:
            data = json.loads(Path(file_path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            return FfprobeResult(file_path, error=str(e))
        return FfprobeResult(
            file_path, format=data.get("format", {}), streams=data.get("streams", [])
        )


class FakeDeviceInfo:
    """Mount table backed by a dict of mount point to identity."""

    def __init__(self, mounts: dict[Path, ContainerIdentity]) -> None:
        self.mounts = dict(mounts)
        self.identify_calls = 0

    def mount_point_for(self, path: Path) -> Path:
        path = Path(path).resolve()
        candidates = [m for m in self.mounts if m == path or m in path.parents]
        if not candidates:
            raise DeviceInfoError(f"Could not find mount point for path: {path}")
        return max(candidates, key=lambda m: len(m.parts))

    def identify(self, mount_point: Path) -> ContainerIdentity:
        self.identify_calls += 1
        try:
            return self.mounts[mount_point]
        except KeyError:
            raise DeviceInfoError(f"No device found for path: {mount_point}") from None

    def list_mount_points(self) -> list[Path]:
        return list(self.mounts)


PHOTO_TAGS = {
    "EXIF:Make": "Canon",
    "EXIF:Model": "EOS 5D",
    "EXIF:DateTimeOriginal": "2023:01:15 14:30:52",
}


@pytest.fixture
def identity() -> ContainerIdentity:
    return ContainerIdentity(partition_id="3f1c2a9e-part", disk_id="WD-SERIAL-0001")


@pytest.fixture
def drive(tmp_path: Path) -> Path:
    """Directory standing in for the mount root of a partition."""
    root = (tmp_path / "drive").resolve()
    root.mkdir()
    return root


@pytest.fixture
def devices(drive: Path, identity: ContainerIdentity) -> FakeDeviceInfo:
    return FakeDeviceInfo({drive: identity})


@pytest.fixture
def resolver(devices: FakeDeviceInfo) -> ContainerResolver:
    return ContainerResolver(devices)


@pytest.fixture
def exiftool() -> FakeExiftool:
    return FakeExiftool()


@pytest.fixture
def fingerprinter(exiftool: FakeExiftool) -> Fingerprinter:
    return Fingerprinter(exiftool=exiftool, ffprobe=FakeFfprobe())


@pytest.fixture
def temp_db(tmp_path: Path) -> Iterator[Database]:
    with Database(tmp_path / "test.db") as db:
        yield db


@pytest.fixture
def scanner(
    temp_db: Database, resolver: ContainerResolver, fingerprinter: Fingerprinter
) -> Scanner:
    return Scanner(temp_db, resolver=resolver, fingerprinter=fingerprinter, batch_size=2)


@pytest.fixture
def make_photo() -> Callable[..., Path]:
    """Write a fake photo whose content is its tag set."""

    def _make(path: Path, **tags: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({**PHOTO_TAGS, **tags}), encoding="utf-8")
        return path

    return _make


@pytest.fixture
def make_video() -> Callable[..., Path]:
    """Write a fake video whose content is its ffprobe output."""

    def _make(path: Path, creation_time: str = "2022-07-04T18:00:00.000000Z") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "format": {
                "duration": "12.5",
                "format_name": "mov,mp4,m4a,3gp,3g2,mj2",
                "tags": {"creation_time": creation_time},
            },
            "streams": [
                {
                    "codec_type": "video",
                    "codec_name": "h264",
                    "width": 1920,
                    "height": 1080,
                    "avg_frame_rate": "30/1",
                },
                {"codec_type": "audio", "codec_name": "aac"},
            ],
        }
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _make
