"""
Run configuration.

Settings come from, lowest precedence first: built-in defaults, a YAML file,
environment variables, and explicit overrides (the CLI flags).

Example YAML:

    numeric_policy: saturate
    stale_merge: reject
    echo_prompts: false
"""

from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union
import os

import yaml

from .errors import ConfigError, Diagnostic, ErrorSeverity
from .runtime.numeric import NumericPolicy
from .runtime.merge import StaleMergePolicy

ENV_NUMERIC_POLICY = "CHRONOBRANCH_NUMERIC_POLICY"
ENV_STALE_MERGE = "CHRONOBRANCH_STALE_MERGE"


@dataclass
class RunConfig:
    """Settings for one interpreter run."""
    numeric_policy: NumericPolicy = NumericPolicy.FLAG
    int_bits: int = 32
    stale_merge: StaleMergePolicy = StaleMergePolicy.COMMIT
    echo_prompts: bool = True
    warn_open_branches: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Plain data (enum values as strings), as recorded in provenance."""
        data = asdict(self)
        data["numeric_policy"] = self.numeric_policy.value
        data["stale_merge"] = self.stale_merge.value
        return data

    def updated(self, values: Mapping[str, Any], origin: str = "overrides") -> "RunConfig":
        """Return a copy with ``values`` applied; None values are ignored."""
        known = {f.name for f in fields(self)}
        data = asdict(self)
        for key, raw in values.items():
            if raw is None:
                continue
            if key not in known:
                raise config_error(f"unknown setting '{key}' in {origin}",
                                   hints=[f"known settings: {', '.join(sorted(known))}"])
            data[key] = _convert(key, raw, origin)
        return RunConfig(**data)


def _convert(key: str, raw: Any, origin: str) -> Any:
    try:
        if key == "numeric_policy":
            return raw if isinstance(raw, NumericPolicy) else NumericPolicy.parse(str(raw))
        if key == "stale_merge":
            return raw if isinstance(raw, StaleMergePolicy) else StaleMergePolicy.parse(str(raw))
        if key == "int_bits":
            integral = isinstance(raw, (int, str)) or (isinstance(raw, float) and raw.is_integer())
            if isinstance(raw, bool) or not integral or int(raw) < 2:
                raise ValueError(f"int_bits must be an integer of at least 2, got {raw!r}")
            return int(raw)
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
            return raw.strip().lower() == "true"
        raise ValueError(f"{key} must be true or false, got {raw!r}")
    except ValueError as e:
        raise config_error(f"invalid {key} in {origin}: {e}")


def config_error(message: str, hints=None) -> ConfigError:
    """E501: Invalid configuration."""
    return ConfigError(Diagnostic(
        code="E501",
        message=message,
        severity=ErrorSeverity.ERROR,
        hints=list(hints or []),
    ))


def load_config(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> RunConfig:
    """
    Build a RunConfig from a YAML file, the environment and overrides.

    Args:
        path: Optional YAML file of settings
        environ: Environment to read (defaults to ``os.environ``)
        overrides: Highest-precedence values, e.g. from CLI flags

    Returns:
        The merged RunConfig
    """
    config = RunConfig()

    if path is not None:
        config_path = Path(path)
        try:
            with config_path.open("r", encoding="utf-8") as fp:
                data = yaml.safe_load(fp) or {}
        except OSError as e:
            raise config_error(f"cannot read config file {config_path}: {e}")
        except yaml.YAMLError as e:
            raise config_error(f"config file {config_path} is not valid YAML: {e}")
        if not isinstance(data, dict):
            raise config_error(f"config file {config_path} must hold a mapping of settings")
        config = config.updated(data, origin=str(config_path))

    env = os.environ if environ is None else environ
    config = config.updated({
        "numeric_policy": env.get(ENV_NUMERIC_POLICY),
        "stale_merge": env.get(ENV_STALE_MERGE),
    }, origin="environment")

    if overrides:
        config = config.updated(overrides)

    return config
