import signal
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def normalize_signal(value: Any) -> int:
    """Normalize a signal given as an int, a numeric string or a name (HUP, SIGHUP)."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid signal: {value!r}")
    if isinstance(value, int):
        if value <= 0:
            raise ValueError(f"Invalid signal: {value!r}")
        return value

    text = str(value).strip().upper()
    if text.isdigit():
        return normalize_signal(int(text))

    name = text if text.startswith("SIG") else f"SIG{text}"
    try:
        return int(signal.Signals[name])
    except KeyError as exc:
        raise ValueError(f"Unknown signal name: {value!r}") from exc


class FrameworkSettings(BaseSettings):
    """
    Process-level settings for dockergen itself.
    """
    model_config = SettingsConfigDict(env_prefix='DOCKERGEN_', extra='ignore')

    log_level: str = "INFO"


class DockerEnvironment(BaseSettings):
    """
    The standard docker client environment variables.
    """
    model_config = SettingsConfigDict(extra='ignore')

    docker_host: Optional[str] = None
    docker_cert_path: Optional[str] = None
    docker_tls_verify: bool = False

    def cert_dir(self) -> Path:
        if self.docker_cert_path:
            return Path(self.docker_cert_path)
        return Path.home() / ".docker"


class TLSSettings(BaseModel):
    """
    TLS material for talking to a remote docker daemon.

    Passed explicitly into connection construction.
    """
    model_config = ConfigDict(extra='ignore', frozen=True)

    cert: Optional[str] = None
    key: Optional[str] = None
    ca_cert: Optional[str] = None
    verify: bool = False

    @classmethod
    def from_environment(cls, env: Optional[DockerEnvironment] = None) -> "TLSSettings":
        env = env or DockerEnvironment()
        cert_dir = env.cert_dir()
        return cls(
            cert=str(cert_dir / "cert.pem"),
            key=str(cert_dir / "key.pem"),
            ca_cert=str(cert_dir / "ca.pem"),
            verify=env.docker_tls_verify,
        )


class OutputConfig(BaseModel):
    """
    One configured (template, destination) pair and its refresh policy.

    Read-only once loaded.
    """
    model_config = ConfigDict(extra='forbid', frozen=True)

    template: str
    dest: str = ""
    watch: bool = False
    notify_cmd: str = ""
    notify_containers: Dict[str, int] = Field(default_factory=dict)
    only_exposed: bool = False
    only_published: bool = False
    interval: int = Field(default=0, ge=0)
    keep_blank_lines: bool = False

    @field_validator("notify_containers", mode="before")
    @classmethod
    def _normalize_signals(cls, value: Any) -> Any:
        if value is None:
            return {}
        if not isinstance(value, dict):
            return value
        return {str(name): normalize_signal(sig) for name, sig in value.items()}

    @property
    def label(self) -> str:
        return self.dest or "<stdout>"


class GeneratorConfig(BaseModel):
    """
    The full configuration consumed by the engine.
    """
    model_config = ConfigDict(extra='forbid')

    endpoint: str = ""
    tls: Optional[TLSSettings] = None
    log_level: Optional[str] = None
    outputs: List[OutputConfig] = Field(default_factory=list)

    def watched_outputs(self) -> List[OutputConfig]:
        return [output for output in self.outputs if output.watch]

    def interval_outputs(self) -> List[OutputConfig]:
        return [output for output in self.outputs if output.interval > 0]


class Address(BaseModel):
    model_config = ConfigDict(frozen=True)

    ip: str = ""
    ip6_link_local: str = ""
    ip6_global: str = ""
    port: str = ""
    host_port: str = ""
    proto: str = ""
    host_ip: str = ""


class Volume(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    host_path: str = ""
    read_write: bool = False


class DockerImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    registry: str = ""
    repository: str = ""
    tag: str = ""

    def __str__(self) -> str:
        ret = self.repository
        if self.registry:
            ret = f"{self.registry}/{self.repository}"
        if self.tag:
            ret = f"{ret}:{self.tag}"
        return ret


class SwarmNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = ""
    name: str = ""
    address: Address = Field(default_factory=Address)


class RuntimeContainer(BaseModel):
    """
    One inspected container as seen by templates.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    hostname: str = ""
    image: DockerImage = Field(default_factory=DockerImage)
    gateway: str = ""
    addresses: List[Address] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)
    volumes: Dict[str, Volume] = Field(default_factory=dict)
    node: SwarmNode = Field(default_factory=SwarmNode)
    labels: Dict[str, str] = Field(default_factory=dict)
    ip: str = ""
    ip6_link_local: str = ""
    ip6_global: str = ""

    def published_addresses(self) -> List[Address]:
        return [address for address in self.addresses if address.host_port]


class EventStatus(str, Enum):
    """Container lifecycle statuses the watcher reacts to."""

    START = "start"
    STOP = "stop"
    DIE = "die"
    OTHER = "other"


ACTIONABLE_STATUSES = {EventStatus.START, EventStatus.STOP, EventStatus.DIE}


class LifecycleEvent(BaseModel):
    """One decoded entry from the daemon event stream."""

    model_config = ConfigDict(frozen=True)

    container_id: str
    status: EventStatus
    image: str = ""

    @classmethod
    def from_raw(cls, container_id: str, status: str, image: str = "") -> "LifecycleEvent":
        try:
            parsed = EventStatus(status)
        except ValueError:
            parsed = EventStatus.OTHER
        return cls(container_id=container_id, status=parsed, image=image)

    @property
    def actionable(self) -> bool:
        return self.status in ACTIONABLE_STATUSES

    @property
    def short_id(self) -> str:
        return self.container_id[:12]
