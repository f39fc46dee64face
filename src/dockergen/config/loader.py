import os
import re
import yaml
from pathlib import Path
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError

from dockergen.core.models import GeneratorConfig
from dockergen.utils.diagnostics import ConfigError

ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]+))?\}")

ALLOWED_KEYS = {"endpoint", "tls", "log_level", "outputs"}


def interpolate_env_vars(content: str) -> str:
    """Replace ${VAR} or ${VAR:default} with environment variables."""
    def replace_match(match: re.Match) -> str:
        var_name = match.group(1)
        default_value = match.group(2) if match.group(2) is not None else ""
        return os.environ.get(var_name, default_value)

    return ENV_VAR_PATTERN.sub(replace_match, content)


def load_config(path: Path) -> Dict[str, Any]:
    """
    Load a dockergen YAML file with environment variable interpolation.

    Unknown top-level keys are dropped. A missing file is a configuration error.
    """
    if not path.exists():
        raise ConfigError("config file does not exist", source=str(path))

    try:
        content = path.read_text(encoding="utf-8")
        full_config = yaml.safe_load(interpolate_env_vars(content)) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(str(exc), source=str(path)) from exc

    if not isinstance(full_config, dict):
        raise ConfigError("top-level document must be a mapping", source=str(path))

    return {k: v for k, v in full_config.items() if k in ALLOWED_KEYS}


def merge_config_data(documents: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge several loaded documents: outputs accumulate, scalar settings are last-wins."""
    merged: Dict[str, Any] = {}
    outputs: List[Any] = []
    for document in documents:
        for key, value in document.items():
            if key == "outputs":
                outputs.extend(value or [])
            else:
                merged[key] = value
    merged["outputs"] = outputs
    return merged


def build_generator_config(data: Dict[str, Any], source: str = "") -> GeneratorConfig:
    try:
        return GeneratorConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(str(exc), source=source or None) from exc


def load_generator_config(paths: List[Path]) -> GeneratorConfig:
    """Load and validate one or more config files into a single GeneratorConfig."""
    documents = [load_config(path) for path in paths]
    return build_generator_config(
        merge_config_data(documents),
        source=", ".join(str(path) for path in paths),
    )
