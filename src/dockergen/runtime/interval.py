from __future__ import annotations

import threading
from typing import Optional

from dockergen.cli.formatter import OutputFormatter
from dockergen.core.models import OutputConfig
from dockergen.execution.renderer import TemplateRenderer
from dockergen.infrastructure.docker_client import DockerClient
from dockergen.runtime.notifier import Notifier
from dockergen.utils.diagnostics import DaemonUnreachable, RenderError


class IntervalTask:
    """Regenerates one output on a fixed period and always notifies afterwards."""

    def __init__(
        self,
        config: OutputConfig,
        connection: DockerClient,
        renderer: TemplateRenderer,
        notifier: Notifier,
        stop_event: threading.Event,
    ) -> None:
        self.config = config
        self.connection = connection
        self.renderer = renderer
        self.notifier = notifier
        self._stop_event = stop_event
        self._thread: Optional[threading.Thread] = None

    def tick(self) -> bool:
        """Run one scheduled regeneration; returns False when the tick was skipped."""
        try:
            containers = self.connection.list_containers()
        except DaemonUnreachable as exc:
            OutputFormatter.log(f"Unable to pull container snapshot: {exc}", severity="error")
            return False

        try:
            self.renderer.render(self.config, containers)
        except RenderError as exc:
            OutputFormatter.log(f"Unable to generate '{self.config.label}': {exc}", severity="error")
            return False

        # Interval outputs may depend on state the change check cannot see.
        self.notifier.notify(self.config, self.connection)
        return True

    def start(self) -> None:
        if self._thread is not None:
            return
        OutputFormatter.log(f"Generating '{self.config.label}' every {self.config.interval} seconds", severity="info")
        self._thread = threading.Thread(
            target=self._run,
            name=f"interval:{self.config.label}",
            daemon=True,
        )
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop_event.wait(self.config.interval):
            self.tick()
