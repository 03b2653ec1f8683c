"""Configuration module for mediadedup."""

from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_DATABASE_NAME = "deduplicator.db"


@dataclass
class ScannerConfig:
    batch_size: int = 100
    progress_interval: int = 1000
    max_path_length: int = 4096


@dataclass
class FingerprintConfig:
    header_bytes: int = 128 * 1024
    probe_timeout: float = 60.0


@dataclass
class Config:
    database_path: Path = field(default_factory=lambda: Path.cwd() / DEFAULT_DATABASE_NAME)
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    fingerprint: FingerprintConfig = field(default_factory=FingerprintConfig)
