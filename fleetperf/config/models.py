"""Pydantic configuration models for perf collection."""

import os
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class HostConfig(BaseModel):
    """One fleet host, as supplied by the inventory."""
    name: str
    platform: str
    hostname: str  # Fleet-assigned hostname, used as the report key
    address: Optional[str] = None  # SSH target, defaults to hostname
    port: int = Field(default=22, ge=1, le=65535)
    username: str = "root"
    ssh_key_path: Optional[str] = None

    @field_validator('ssh_key_path')
    @classmethod
    def expand_key_path(cls, v: Optional[str]) -> Optional[str]:
        return os.path.expanduser(v) if v else None

    @property
    def ssh_address(self) -> str:
        return self.address or self.hostname

    def __str__(self) -> str:
        return self.name


class PerfConfig(BaseModel):
    """Sampler activation and collection settings."""
    collect_mode: Literal["off", "normal", "aggressive"] = "normal"
    max_workers: int = Field(default=1, ge=1)  # 1 = strictly sequential
    command_timeout: float = Field(default=120.0, gt=0)
    connect_timeout: float = Field(default=10.0, gt=0)

    @field_validator('collect_mode', mode='before')
    @classmethod
    def normalize_mode(cls, v):
        """Accept any casing and treat a missing value as off."""
        if v is None or v is False:
            return "off"
        return str(v).strip().lower()

    @property
    def enabled(self) -> bool:
        return self.collect_mode != "off"

    @property
    def aggressive(self) -> bool:
        return self.collect_mode == "aggressive"


class GraphiteConfig(BaseModel):
    """Graphite plaintext endpoint."""
    server: Optional[str] = None
    port: int = Field(default=2003, ge=1, le=65535)
    prefix: Optional[str] = None  # Namespace prepended to every metric path
    max_connections: int = Field(default=1, ge=1)
    send_timeout: float = Field(default=5.0, gt=0)

    @field_validator('prefix')
    @classmethod
    def strip_dots(cls, v: Optional[str]) -> Optional[str]:
        """Remove leading/trailing dots so paths never contain empty nodes."""
        if not v:
            return None
        return v.strip().strip('.') or None

    @model_validator(mode='after')
    def prefix_required_with_server(self) -> 'GraphiteConfig':
        if self.server and not self.prefix:
            raise ValueError('graphite.prefix is required when graphite.server is set')
        return self

    @property
    def enabled(self) -> bool:
        return bool(self.server and self.prefix)


class SnapshotConfig(BaseModel):
    """JSON snapshot of the collected report."""
    enabled: bool = False
    path: Optional[str] = None  # Explicit file path
    log_dated_dir: Optional[str] = None  # Per-run log directory

    @model_validator(mode='after')
    def destination_required(self) -> 'SnapshotConfig':
        if self.enabled and not (self.path or self.log_dated_dir):
            raise ValueError('snapshot.path or snapshot.log_dated_dir is required when enabled')
        return self

    def resolve_path(self) -> Path:
        """Explicit path if given, otherwise <log_dated_dir>/perf_data.json."""
        if self.path:
            return Path(self.path).expanduser()
        return Path(self.log_dated_dir).expanduser() / "perf_data.json"


class PerfSystemConfig(BaseModel):
    """Root configuration model."""
    perf: PerfConfig = Field(default_factory=PerfConfig)
    graphite: GraphiteConfig = Field(default_factory=GraphiteConfig)
    snapshot: SnapshotConfig = Field(default_factory=SnapshotConfig)
    hosts: List[HostConfig] = Field(default_factory=list)

    @field_validator('hosts')
    @classmethod
    def unique_hostnames(cls, v: List[HostConfig]) -> List[HostConfig]:
        """Report entries are keyed by hostname, so duplicates would collide."""
        seen = set()
        for host in v:
            if host.hostname in seen:
                raise ValueError(f'Duplicate host hostname: {host.hostname}')
            seen.add(host.hostname)
        return v
