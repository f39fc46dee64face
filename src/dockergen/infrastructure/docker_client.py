"""Docker daemon access over the ``docker`` command-line client.

A :class:`DockerConnection` is an immutable handle (endpoint plus TLS
material). Every call spawns a fresh ``docker`` subprocess, so one handle
can be shared read-only between threads; reconnecting means building a new
handle, never mutating an old one.
"""

from __future__ import annotations

import json
import queue
import subprocess
import threading
from typing import Any, Dict, List, Optional, Protocol

from dockergen.cli.formatter import OutputFormatter
from dockergen.core.models import (
    Address,
    DockerEnvironment,
    DockerImage,
    LifecycleEvent,
    RuntimeContainer,
    SwarmNode,
    TLSSettings,
    Volume,
)
from dockergen.utils.diagnostics import (
    ConfigError,
    DaemonUnreachable,
    SignalFailed,
    SubscriptionFailed,
    SubscriptionLost,
)
from dockergen.utils.text import get_endpoint, path_exists, split_docker_image, split_key_value_slice

DEFAULT_TIMEOUT = 30

_CLOSED = object()


class EventSubscription(Protocol):
    """A live lifecycle event stream."""

    def get(self, timeout: float) -> Optional[LifecycleEvent]: ...
    def close(self) -> None: ...


class DockerClient(Protocol):
    """Operations the engine needs from a daemon connection."""

    endpoint: str

    def ping(self) -> None: ...
    def list_containers(self) -> List[RuntimeContainer]: ...
    def subscribe_events(self) -> EventSubscription: ...
    def kill(self, container: str, signal: int) -> None: ...


def tls_enabled(tls: TLSSettings) -> bool:
    return any(path_exists(path) for path in (tls.cert, tls.ca_cert, tls.key))


def parse_event(line: str) -> Optional[LifecycleEvent]:
    """Decode one ``docker events --format '{{json .}}'`` line; None when it is not an event."""
    try:
        payload = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None

    actor = payload.get("Actor") or {}
    container_id = payload.get("id") or actor.get("ID") or ""
    status = payload.get("status") or payload.get("Action") or ""
    if not container_id:
        return None
    return LifecycleEvent.from_raw(container_id, status, image=payload.get("from", ""))


def container_from_inspect(payload: Dict[str, Any]) -> RuntimeContainer:
    """Build a RuntimeContainer from one ``docker inspect`` document."""
    config = payload.get("Config") or {}
    network = payload.get("NetworkSettings") or {}

    ip = network.get("IPAddress", "") or ""
    ip6_link_local = network.get("LinkLocalIPv6Address", "") or ""
    ip6_global = network.get("GlobalIPv6Address", "") or ""

    addresses: List[Address] = []
    for port_spec, bindings in (network.get("Ports") or {}).items():
        port, _, proto = port_spec.partition("/")
        host_port = ""
        host_ip = ""
        if bindings:
            host_port = bindings[0].get("HostPort", "") or ""
            host_ip = bindings[0].get("HostIp", "") or ""
        addresses.append(
            Address(
                ip=ip,
                ip6_link_local=ip6_link_local,
                ip6_global=ip6_global,
                port=port,
                proto=proto or "tcp",
                host_port=host_port,
                host_ip=host_ip,
            )
        )

    volumes: Dict[str, Volume] = {}
    volumes_rw = payload.get("VolumesRW") or {}
    for path, host_path in (payload.get("Volumes") or {}).items():
        volumes[path] = Volume(path=path, host_path=host_path or "", read_write=bool(volumes_rw.get(path)))
    for mount in payload.get("Mounts") or []:
        destination = mount.get("Destination", "")
        if not destination or destination in volumes:
            continue
        volumes[destination] = Volume(
            path=destination,
            host_path=mount.get("Source", "") or "",
            read_write=bool(mount.get("RW")),
        )

    node = SwarmNode()
    node_payload = payload.get("Node")
    if node_payload:
        node = SwarmNode(
            id=node_payload.get("ID", ""),
            name=node_payload.get("Name", ""),
            address=Address(ip=node_payload.get("IP", "")),
        )

    registry, repository, tag = split_docker_image(config.get("Image", "") or "")
    return RuntimeContainer(
        id=payload.get("Id", ""),
        name=(payload.get("Name", "") or "").lstrip("/"),
        hostname=config.get("Hostname", "") or "",
        image=DockerImage(registry=registry, repository=repository, tag=tag),
        gateway=network.get("Gateway", "") or "",
        addresses=addresses,
        env=split_key_value_slice(config.get("Env")),
        volumes=volumes,
        node=node,
        labels=config.get("Labels") or {},
        ip=ip,
        ip6_link_local=ip6_link_local,
        ip6_global=ip6_global,
    )


class DockerEventStream:
    """Event subscription backed by a long-running ``docker events`` process."""

    def __init__(self, process: subprocess.Popen) -> None:
        self._process = process
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._closed = False
        self._reader = threading.Thread(target=self._read_loop, daemon=True)
        self._reader.start()

    def get(self, timeout: float) -> Optional[LifecycleEvent]:
        """Wait up to ``timeout`` seconds for an event; None on timeout."""
        if self._closed:
            raise SubscriptionLost("event stream is closed")
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CLOSED:
            self._closed = True
            raise SubscriptionLost("event stream closed by the daemon")
        return item

    def close(self) -> None:
        if self._process.poll() is None:
            self._process.terminate()
            try:
                self._process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self._process.kill()
                self._process.wait()

    def _read_loop(self) -> None:
        try:
            for line in self._process.stdout:
                line = line.strip()
                if not line:
                    continue
                event = parse_event(line)
                if event is None:
                    OutputFormatter.log(f"Ignoring event stream output: {line}", severity="debug")
                    continue
                self._queue.put(event)
        finally:
            self._queue.put(_CLOSED)


class DockerConnection:
    """Connection handle for one daemon endpoint."""

    def __init__(
        self,
        endpoint: str,
        tls: Optional[TLSSettings] = None,
        docker_bin: str = "docker",
        timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        self.endpoint = endpoint
        self.tls = tls or TLSSettings()
        self.docker_bin = docker_bin
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"DockerConnection(endpoint={self.endpoint!r})"

    def command(self, *args: str) -> List[str]:
        """Full argv for a docker CLI call against this endpoint."""
        argv = [self.docker_bin, "--host", self.endpoint]
        if not self.endpoint.startswith("unix:") and (self.tls.verify or tls_enabled(self.tls)):
            argv.append("--tlsverify" if self.tls.verify else "--tls")
            if path_exists(self.tls.ca_cert):
                argv.extend(["--tlscacert", self.tls.ca_cert])
            if path_exists(self.tls.cert):
                argv.extend(["--tlscert", self.tls.cert])
            if path_exists(self.tls.key):
                argv.extend(["--tlskey", self.tls.key])
        argv.extend(args)
        return argv

    def _run(self, *args: str) -> subprocess.CompletedProcess[str]:
        try:
            return subprocess.run(
                self.command(*args),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise DaemonUnreachable(f"{self.endpoint}: {exc}") from exc

    def ping(self) -> None:
        result = self._run("version", "--format", "{{.Server.Version}}")
        if result.returncode != 0:
            raise DaemonUnreachable(f"{self.endpoint}: {result.stderr.strip() or 'ping failed'}")

    def list_containers(self) -> List[RuntimeContainer]:
        """Pull a snapshot of all running containers."""
        listing = self._run("ps", "--quiet", "--no-trunc")
        if listing.returncode != 0:
            raise DaemonUnreachable(f"error listing containers: {listing.stderr.strip()}")

        ids = [line.strip() for line in listing.stdout.splitlines() if line.strip()]
        if not ids:
            return []

        inspected = self._run("inspect", *ids)
        if inspected.returncode != 0 and not inspected.stdout.strip():
            raise DaemonUnreachable(f"error inspecting containers: {inspected.stderr.strip()}")
        try:
            documents = json.loads(inspected.stdout)
        except json.JSONDecodeError as exc:
            raise DaemonUnreachable(f"error inspecting containers: {exc}") from exc
        if not isinstance(documents, list):
            raise DaemonUnreachable("error inspecting containers: unexpected inspect output")

        containers = [container_from_inspect(document) for document in documents]
        found = {container.id for container in containers}
        for container_id in ids:
            if container_id not in found:
                OutputFormatter.log(
                    f"error inspecting container: {container_id[:12]}: {inspected.stderr.strip()}",
                    severity="warning",
                )
        return containers

    def subscribe_events(self) -> DockerEventStream:
        try:
            process = subprocess.Popen(
                self.command("events", "--filter", "type=container", "--format", "{{json .}}"),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as exc:
            raise SubscriptionFailed(f"{self.endpoint}: {exc}") from exc
        return DockerEventStream(process)

    def kill(self, container: str, signal: int) -> None:
        try:
            result = self._run("kill", "--signal", str(signal), container)
        except DaemonUnreachable as exc:
            raise SignalFailed(container, signal, str(exc)) from exc
        if result.returncode != 0:
            raise SignalFailed(container, signal, result.stderr.strip())


def new_docker_connection(endpoint: str = "", tls: Optional[TLSSettings] = None) -> DockerConnection:
    """
    Validate the endpoint and TLS material and build a connection handle.
    """
    tls = tls or TLSSettings()
    try:
        resolved = get_endpoint(endpoint, docker_host=DockerEnvironment().docker_host or "")
    except ValueError as exc:
        raise ConfigError(f"Bad endpoint: {exc}") from exc

    if not resolved.startswith("unix:") and tls.verify and not path_exists(tls.ca_cert):
        raise ConfigError("TLS verification was requested, but CA cert does not exist")

    return DockerConnection(resolved, tls=tls)
