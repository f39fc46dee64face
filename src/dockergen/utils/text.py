import os
import re
from typing import Dict, Iterable, Optional, Tuple

DEFAULT_UNIX_SOCKET = "/var/run/docker.sock"
DEFAULT_ENDPOINT = f"unix://{DEFAULT_UNIX_SOCKET}"

_LINE_PATTERN = re.compile(r"[^\n]*\n|[^\n]+$")


def parse_host(addr: str) -> Tuple[str, str]:
    """
    Split a docker host address into (proto, address).

    Raises ValueError on malformed input.
    """
    addr = addr.strip()
    if addr == "tcp://":
        raise ValueError(f"Invalid bind address format: {addr}")

    if addr.startswith("unix://"):
        proto = "unix"
        addr = addr[len("unix://"):] or DEFAULT_UNIX_SOCKET
    elif addr.startswith("tcp://"):
        proto = "tcp"
        addr = addr[len("tcp://"):]
    elif addr.startswith("fd://"):
        return "fd", addr
    elif addr == "":
        proto = "unix"
        addr = DEFAULT_UNIX_SOCKET
    else:
        if "://" in addr:
            raise ValueError(f"Invalid bind address protocol: {addr}")
        proto = "tcp"

    if proto == "unix":
        return proto, addr

    if ":" not in addr:
        raise ValueError(f"Invalid bind address format: {addr}")

    host_parts = addr.split(":")
    if len(host_parts) != 2:
        raise ValueError(f"Invalid bind address format: {addr}")

    host = host_parts[0] or "127.0.0.1"
    try:
        port = int(host_parts[1])
    except ValueError as exc:
        raise ValueError(f"Invalid bind address format: {addr}") from exc
    if port == 0:
        raise ValueError(f"Invalid bind address format: {addr}")

    return proto, f"{host}:{port}"


def get_endpoint(endpoint: str = "", docker_host: Optional[str] = None) -> str:
    """Resolve the daemon endpoint: explicit value, then DOCKER_HOST, then the local socket."""
    if docker_host is None:
        docker_host = os.environ.get("DOCKER_HOST", "")

    resolved = endpoint or docker_host or DEFAULT_ENDPOINT
    parse_host(resolved)
    return resolved


def split_key_value_slice(items: Optional[Iterable[str]]) -> Dict[str, str]:
    """Turn ["K=V", ...] into a dict; entries without '=' are dropped."""
    values: Dict[str, str] = {}
    for item in items or []:
        if "=" not in item:
            continue
        key, value = item.split("=", 1)
        values[key] = value
    return values


def split_docker_image(image: str) -> Tuple[str, str, str]:
    """Split an image reference into (registry, repository, tag)."""
    registry = ""
    tag = ""
    repository = image
    if "/" in image:
        registry, repository = image.split("/", 1)

    if ":" in repository:
        repository, tag = repository.split(":", 1)

    return registry, repository, tag


def is_blank(line: str) -> bool:
    return line.strip() == ""


def remove_blank_lines(text: str) -> str:
    """Drop whitespace-only lines, keeping original line endings."""
    return "".join(line for line in _LINE_PATTERN.findall(text) if not is_blank(line))


def path_exists(path: Optional[str]) -> bool:
    if not path:
        return False
    return os.path.exists(path)
