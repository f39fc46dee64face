from __future__ import annotations

import subprocess
from typing import List

from dockergen.cli.formatter import OutputFormatter
from dockergen.core.models import OutputConfig
from dockergen.infrastructure.docker_client import DockerClient
from dockergen.utils.diagnostics import SignalFailed

SHELL = "/bin/sh"


class Notifier:
    """Best-effort side effects after an output was regenerated."""

    def __init__(self, shell: str = SHELL) -> None:
        self.shell = shell

    def notify(self, config: OutputConfig, connection: DockerClient | None) -> None:
        """Run the notify command, then signal each configured container."""
        self.run_notify_cmd(config)
        self.send_signals(config, connection)

    def run_notify_cmd(self, config: OutputConfig) -> bool:
        if not config.notify_cmd:
            return True

        OutputFormatter.log(f"Running '{config.notify_cmd}'", severity="info")
        try:
            result = subprocess.run(
                [self.shell, "-c", config.notify_cmd],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except OSError as exc:
            OutputFormatter.log(f"Error running notify command: {config.notify_cmd}, {exc}", severity="error")
            return False

        if result.returncode != 0:
            OutputFormatter.log(
                f"Error running notify command: {config.notify_cmd}, exit status {result.returncode}",
                severity="error",
            )
            if result.stdout:
                OutputFormatter.log(result.stdout.rstrip(), severity="error")
            return False
        return True

    def send_signals(self, config: OutputConfig, connection: DockerClient | None) -> List[str]:
        """Signal every notify target; returns the containers that could not be signalled."""
        failed: List[str] = []
        if not config.notify_containers:
            return failed

        for container, signal in config.notify_containers.items():
            if connection is None:
                OutputFormatter.log(
                    f"Error sending signal to container '{container}': no docker connection",
                    severity="error",
                )
                failed.append(container)
                continue

            OutputFormatter.log(f"Sending container '{container}' signal '{signal}'", severity="info")
            try:
                connection.kill(container, signal)
            except SignalFailed as exc:
                OutputFormatter.log(f"Error sending signal to container: {exc}", severity="error")
                failed.append(container)
        return failed
