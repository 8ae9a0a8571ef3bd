"""
Interpreter configuration.

Settings can be given in code or loaded from a YAML file:

    shell: /bin/bash
    interface_root: ./interfaces
    encoding: utf-8
    max_call_depth: 128
    env:
      API_TOKEN: secret
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .errors import error_config


@dataclass
class SamConfig:
    """Settings that affect how programs talk to the outside world."""
    shell: str = "/bin/sh"                  # runs foreign-function command lines with -c
    interface_root: Optional[str] = None    # base directory for relative manifest paths
    encoding: str = "utf-8"                 # decodes subprocess output
    max_call_depth: int = 64
    env: Dict[str, str] = field(default_factory=dict)

    def resolve_manifest(self, path: str) -> Path:
        """Resolve an interface manifest path against `interface_root`."""
        manifest = Path(path)
        if self.interface_root and not manifest.is_absolute():
            return Path(self.interface_root) / manifest
        return manifest

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SamConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise error_config(f"unknown configuration key(s): {', '.join(unknown)}")

        config = cls(**data)
        if not isinstance(config.shell, str) or not config.shell:
            raise error_config("'shell' must be a non-empty string")
        if config.interface_root is not None and not isinstance(config.interface_root, str):
            raise error_config("'interface_root' must be a string")
        if not isinstance(config.encoding, str):
            raise error_config("'encoding' must be a string")
        if (not isinstance(config.max_call_depth, int) or isinstance(config.max_call_depth, bool)
                or config.max_call_depth < 1):
            raise error_config("'max_call_depth' must be a positive integer")
        if not isinstance(config.env, dict):
            raise error_config("'env' must be a mapping")
        config.env = {str(k): str(v) for k, v in config.env.items()}
        return config

    @classmethod
    def load(cls, path: Union[str, Path]) -> "SamConfig":
        """Load configuration from a YAML file."""
        config_path = Path(path)
        if not config_path.exists():
            raise error_config(f"configuration file not found: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as fp:
                data = yaml.safe_load(fp) or {}
        except yaml.YAMLError as e:
            raise error_config(f"YAML parse error in {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise error_config(f"expected mapping at root of {config_path}, got {type(data).__name__}")

        return cls.from_dict(data)
