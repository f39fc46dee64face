"""Generate files from docker container metadata and keep them in sync."""

__version__ = "0.1.0"

__all__ = [
	"__version__",
]
