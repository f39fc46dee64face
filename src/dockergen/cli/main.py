import signal
from pathlib import Path
from typing import List, Optional

import typer

from dockergen import __version__
from dockergen.cli.formatter import OutputFormatter
from dockergen.config.loader import build_generator_config, load_generator_config
from dockergen.core.models import (
    DockerEnvironment,
    FrameworkSettings,
    GeneratorConfig,
    OutputConfig,
    TLSSettings,
)
from dockergen.runtime.engine import Engine
from dockergen.utils.diagnostics import ConfigError

app = typer.Typer(name="dockergen", help="Generate files from docker container metadata", rich_markup_mode=None)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


def _resolve_tls(
    config: GeneratorConfig,
    tlscert: Optional[str],
    tlskey: Optional[str],
    tlscacert: Optional[str],
    tlsverify: Optional[bool],
) -> TLSSettings:
    base = config.tls or TLSSettings.from_environment(DockerEnvironment())
    updates = {}
    if tlscert is not None:
        updates["cert"] = tlscert
    if tlskey is not None:
        updates["key"] = tlskey
    if tlscacert is not None:
        updates["ca_cert"] = tlscacert
    if tlsverify is not None:
        updates["verify"] = tlsverify
    return base.model_copy(update=updates)


def build_config(
    template: Optional[str],
    dest: Optional[str],
    config_paths: List[Path],
    watch: bool,
    notify: str,
    notify_sighup: List[str],
    only_exposed: bool,
    only_published: bool,
    interval: int,
    keep_blank_lines: bool,
    endpoint: Optional[str],
    tlscert: Optional[str] = None,
    tlskey: Optional[str] = None,
    tlscacert: Optional[str] = None,
    tlsverify: Optional[bool] = None,
) -> GeneratorConfig:
    """Combine config files, the environment and command-line flags into one GeneratorConfig."""
    if config_paths:
        config = load_generator_config(config_paths)
    else:
        if not template:
            raise ConfigError("a template or at least one --config file is required")
        output = {
            "template": template,
            "dest": dest or "",
            "watch": watch,
            "notify_cmd": notify,
            "notify_containers": {name: int(signal.SIGHUP) for name in notify_sighup},
            "only_exposed": only_exposed,
            "only_published": only_published,
            "interval": interval,
            "keep_blank_lines": keep_blank_lines,
        }
        config = build_generator_config({"outputs": [output]}, source="command line")

    updates = {"tls": _resolve_tls(config, tlscert, tlskey, tlscacert, tlsverify)}
    if endpoint:
        updates["endpoint"] = endpoint
    return config.model_copy(update=updates)


def _install_signal_handlers(engine: Engine) -> None:
    def _handle(signum, frame):
        OutputFormatter.log(f"Received {signal.Signals(signum).name}, shutting down.", severity="info")
        engine.stop()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


@app.command()
def generate(
    template: Optional[str] = typer.Argument(None, help="Template file to render."),
    dest: Optional[str] = typer.Argument(None, help="Destination file; stdout when omitted."),
    watch: bool = typer.Option(False, "--watch", help="Watch for container changes."),
    notify: str = typer.Option("", "--notify", help="Run a command after the template is regenerated."),
    notify_sighup: Optional[List[str]] = typer.Option(
        None, "--notify-sighup", help="Send HUP signal to a container after the template is regenerated."
    ),
    only_exposed: bool = typer.Option(False, "--only-exposed", help="Only include containers with exposed ports."),
    only_published: bool = typer.Option(
        False, "--only-published", help="Only include containers with published ports (implies exposed)."
    ),
    interval: int = typer.Option(0, "--interval", min=0, help="Notify command interval in seconds."),
    keep_blank_lines: bool = typer.Option(False, "--keep-blank-lines", help="Keep blank lines in the output file."),
    config: Optional[List[Path]] = typer.Option(None, "--config", help="Config file with template directives."),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", help="Docker API endpoint."),
    tlscert: Optional[str] = typer.Option(None, "--tlscert", help="Path to TLS certificate file."),
    tlskey: Optional[str] = typer.Option(None, "--tlskey", help="Path to TLS client key file."),
    tlscacert: Optional[str] = typer.Option(None, "--tlscacert", help="Path to TLS CA certificate file."),
    tlsverify: Optional[bool] = typer.Option(
        None, "--tlsverify/--no-tlsverify", help="Verify docker daemon's TLS certificate."
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit."
    ),
):
    """Generate files from docker container metadata and keep them up to date."""
    try:
        generator_config = build_config(
            template=template,
            dest=dest,
            config_paths=list(config or []),
            watch=watch,
            notify=notify,
            notify_sighup=list(notify_sighup or []),
            only_exposed=only_exposed,
            only_published=only_published,
            interval=interval,
            keep_blank_lines=keep_blank_lines,
            endpoint=endpoint,
            tlscert=tlscert,
            tlskey=tlskey,
            tlscacert=tlscacert,
            tlsverify=tlsverify,
        )
        OutputFormatter.set_level(log_level or generator_config.log_level or FrameworkSettings().log_level)
        engine = Engine(generator_config)
    except ConfigError as exc:
        OutputFormatter.log(str(exc), severity="critical")
        raise typer.Exit(code=1)
    except ValueError as exc:
        OutputFormatter.log(f"Configuration Error: {exc}", severity="critical")
        raise typer.Exit(code=1)

    _install_signal_handlers(engine)
    engine.run()


if __name__ == "__main__":
    app()
