from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from dockergen.cli.formatter import OutputFormatter
from dockergen.core.models import GeneratorConfig, OutputConfig
from dockergen.execution.renderer import TemplateRenderer
from dockergen.infrastructure.docker_client import DockerClient, new_docker_connection
from dockergen.runtime.contracts import PING_INTERVAL_SECONDS, RETRY_DELAY_SECONDS
from dockergen.runtime.event_watcher import EventWatcher
from dockergen.runtime.interval import IntervalTask
from dockergen.runtime.notifier import Notifier
from dockergen.utils.diagnostics import DaemonUnreachable, RenderError


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one generate-all pass."""

    aborted: bool = False
    changed: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class Engine:
    """Composition root: startup pass, interval tasks and the event watcher."""

    def __init__(
        self,
        config: GeneratorConfig,
        connect: Optional[Callable[[], DockerClient]] = None,
        renderer: Optional[TemplateRenderer] = None,
        notifier: Optional[Notifier] = None,
        retry_delay: float = RETRY_DELAY_SECONDS,
        ping_interval: float = PING_INTERVAL_SECONDS,
    ) -> None:
        self.config = config
        self.connect = connect or (lambda: new_docker_connection(config.endpoint, config.tls))
        self.renderer = renderer or TemplateRenderer()
        self.notifier = notifier or Notifier()
        self.retry_delay = retry_delay
        self.ping_interval = ping_interval

        # Startup configuration errors (bad endpoint, missing CA) surface here.
        self.connection: DockerClient = self.connect()

        self.interval_tasks: List[IntervalTask] = []
        self.event_watcher: Optional[EventWatcher] = None
        self._stop_event = threading.Event()

    def run(self) -> None:
        """Generate everything once, then keep outputs in sync until stopped."""
        self.generate_all(self.config.outputs, self.connection)
        self.start()
        self.wait()

    def generate_all(self, outputs: List[OutputConfig], connection: DockerClient) -> GenerationResult:
        """Render every output against one shared snapshot; notify only on change."""
        try:
            containers = connection.list_containers()
        except DaemonUnreachable as exc:
            OutputFormatter.log(f"Unable to pull container snapshot: {exc}", severity="error")
            return GenerationResult(aborted=True)

        result = GenerationResult()
        for output in outputs:
            try:
                changed = self.renderer.render(output, containers)
            except RenderError as exc:
                OutputFormatter.log(f"Unable to generate '{output.label}': {exc}", severity="error")
                result.failed.append(output.label)
                continue

            if not changed:
                OutputFormatter.log(
                    f"Contents of {output.label} did not change. Skipping notification '{output.notify_cmd}'",
                    severity="debug",
                )
                result.unchanged.append(output.label)
                continue

            result.changed.append(output.label)
            self.notifier.notify(output, connection)
        return result

    def start(self) -> None:
        """Launch one interval task per output with interval > 0 and the watcher when needed."""
        for output in self.config.interval_outputs():
            task = IntervalTask(
                config=output,
                connection=self.connection,
                renderer=self.renderer,
                notifier=self.notifier,
                stop_event=self._stop_event,
            )
            self.interval_tasks.append(task)
            task.start()

        watched = self.config.watched_outputs()
        if watched:
            self.event_watcher = EventWatcher(
                outputs=watched,
                connect=self.connect,
                generate=self.generate_all,
                stop_event=self._stop_event,
                connection=self.connection,
                retry_delay=self.retry_delay,
                ping_interval=self.ping_interval,
            )
            self.event_watcher.start(background=True)

    def wait(self) -> None:
        """Block until every spawned task has exited."""
        for task in self.interval_tasks:
            while task.is_alive():
                task.join(timeout=1.0)
        if self.event_watcher is not None:
            while self.event_watcher.is_alive():
                self.event_watcher.join(timeout=1.0)

    def stop(self) -> None:
        """Request shutdown of every task; safe to call from a signal handler."""
        self._stop_event.set()
        if self.event_watcher is not None:
            self.event_watcher.stop()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()
