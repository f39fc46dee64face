import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import jinja2
from jinja2 import Environment, FileSystemLoader
from pydantic import BaseModel

from dockergen.cli.formatter import OutputFormatter
from dockergen.core.models import OutputConfig, RuntimeContainer
from dockergen.utils.diagnostics import TemplateError, WriteError
from dockergen.utils.text import remove_blank_lines

DEFAULT_FILE_MODE = 0o644


def deep_get(item: Any, path: str) -> Any:
    """Resolve a dotted path against nested models and mappings ("env.VIRTUAL_HOST")."""
    current = item
    for part in path.split("."):
        if current is None:
            return None
        if isinstance(current, dict):
            current = current.get(part)
        else:
            current = getattr(current, part, None)
    return current


def group_by(items: Iterable[Any], key: str) -> Dict[Any, List[Any]]:
    groups: Dict[Any, List[Any]] = {}
    for item in items:
        value = deep_get(item, key)
        if value is None or value == "":
            continue
        groups.setdefault(value, []).append(item)
    return groups


def group_by_multi(items: Iterable[Any], key: str, sep: str) -> Dict[str, List[Any]]:
    groups: Dict[str, List[Any]] = {}
    for item in items:
        value = deep_get(item, key)
        if not value:
            continue
        for part in str(value).split(sep):
            part = part.strip()
            if part:
                groups.setdefault(part, []).append(item)
    return groups


def group_by_label(items: Iterable[Any], label: str) -> Dict[str, List[Any]]:
    groups: Dict[str, List[Any]] = {}
    for item in items:
        labels = deep_get(item, "labels") or {}
        if label in labels:
            groups.setdefault(labels[label], []).append(item)
    return groups


def where(items: Iterable[Any], key: str, value: Any) -> List[Any]:
    return [item for item in items if deep_get(item, key) == value]


def where_exists(items: Iterable[Any], key: str) -> List[Any]:
    return [item for item in items if deep_get(item, key) is not None]


def where_label_exists(items: Iterable[Any], label: str) -> List[Any]:
    return [item for item in items if label in (deep_get(item, "labels") or {})]


def keys(mapping: Dict[Any, Any]) -> List[Any]:
    return list(mapping.keys())


def closest(candidates: Iterable[str], text: str) -> str:
    """Longest candidate that is a substring of ``text``."""
    best = ""
    for candidate in candidates:
        if candidate in text and len(candidate) > len(best):
            best = candidate
    return best


def to_json(value: Any) -> str:
    def json_serializer(obj):
        if isinstance(obj, BaseModel):
            return obj.model_dump(mode='json')
        return str(obj)

    return json.dumps(value, default=json_serializer)


TEMPLATE_HELPERS: Dict[str, Callable[..., Any]] = {
    "closest": closest,
    "deep_get": deep_get,
    "group_by": group_by,
    "group_by_label": group_by_label,
    "group_by_multi": group_by_multi,
    "keys": keys,
    "to_json": to_json,
    "where": where,
    "where_exists": where_exists,
    "where_label_exists": where_label_exists,
}


def filter_containers(config: OutputConfig, containers: List[RuntimeContainer]) -> List[RuntimeContainer]:
    """Apply the output's only_exposed / only_published filters."""
    filtered = []
    for container in containers:
        if config.only_exposed and not container.addresses:
            continue
        if config.only_published and not container.published_addresses():
            continue
        filtered.append(container)
    return filtered


def atomic_write_text(path: Path, text: str, mode: int = DEFAULT_FILE_MODE) -> None:
    """
    Write text next to ``path`` in a temporary file and rename it into place.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as tmp:
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)


class TemplateRenderer:
    """
    Renders one output from a container snapshot and reports whether the
    destination content changed.

    Writes to the same destination are serialized with a per-path lock so an
    interval tick and an event-triggered pass never interleave.
    """

    def __init__(self, environ: Optional[Dict[str, str]] = None) -> None:
        self.environ = environ
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def render(self, config: OutputConfig, containers: List[RuntimeContainer]) -> bool:
        text = self.render_text(config, containers)

        if not config.dest:
            OutputFormatter.print_data(text)
            return True

        dest = Path(config.dest)
        with self._lock_for(dest):
            return self._write_if_changed(dest, text, config)

    def render_text(self, config: OutputConfig, containers: List[RuntimeContainer]) -> str:
        template_path = Path(config.template)
        if not template_path.is_file():
            raise TemplateError("template not found", template=config.template)

        env = Environment(
            loader=FileSystemLoader(str(template_path.parent)),
            autoescape=False,
            keep_trailing_newline=True,
        )
        env.globals.update(TEMPLATE_HELPERS)

        context = {
            "containers": filter_containers(config, containers),
            "env": dict(self.environ if self.environ is not None else os.environ),
        }

        try:
            rendered = env.get_template(template_path.name).render(**context)
        except jinja2.TemplateError as exc:
            raise TemplateError(str(exc), template=config.template) from exc
        except Exception as exc:
            raise TemplateError(f"{type(exc).__name__}: {exc}", template=config.template) from exc

        if not config.keep_blank_lines:
            rendered = remove_blank_lines(rendered)
        return rendered

    def _write_if_changed(self, dest: Path, text: str, config: OutputConfig) -> bool:
        mode = DEFAULT_FILE_MODE
        try:
            if dest.exists():
                if dest.read_bytes() == text.encode("utf-8"):
                    return False
                mode = dest.stat().st_mode & 0o7777
            atomic_write_text(dest, text, mode=mode)
        except (OSError, UnicodeError) as exc:
            raise WriteError(f"{dest}: {exc}", template=config.template) from exc

        OutputFormatter.log(f"Generated '{dest}'", severity="info")
        return True

    def _lock_for(self, dest: Path) -> threading.Lock:
        key = str(dest.expanduser().resolve())
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock
