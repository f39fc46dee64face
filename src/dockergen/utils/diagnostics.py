from typing import Optional


class DockerGenError(Exception):
    """
    Base class for every error raised by dockergen components.
    """


class ConfigError(DockerGenError):
    """
    Invalid configuration detected at startup. The only fatal error class.
    """
    def __init__(self, message: str, source: Optional[str] = None):
        self.message = message
        self.source = source
        ctx = f" in '{source}'" if source else ""
        super().__init__(f"Configuration Error{ctx}: {message}")


class DaemonUnreachable(DockerGenError):
    """The docker daemon could not be reached (connect, ping or snapshot pull)."""


class SubscriptionFailed(DockerGenError):
    """The event stream could not be opened."""


class SubscriptionLost(DockerGenError):
    """The event stream closed underneath an active subscription."""


class SignalFailed(DockerGenError):
    """
    Delivering a signal to a container failed.
    """
    def __init__(self, container: str, signal: int, reason: str):
        self.container = container
        self.signal = signal
        self.reason = reason
        super().__init__(f"Unable to send signal {signal} to container '{container}': {reason}")


class RenderError(DockerGenError):
    """
    Base class for failures while producing one output.
    """
    def __init__(self, message: str, template: Optional[str] = None):
        self.message = message
        self.template = template
        ctx = f" for template '{template}'" if template else ""
        super().__init__(f"Render Error{ctx}: {message}")


class TemplateError(RenderError):
    """The template could not be loaded or rendered."""


class WriteError(RenderError):
    """The rendered output could not be written to its destination."""
