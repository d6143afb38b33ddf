"""Load the perf configuration from YAML."""

import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml

from .models import PerfSystemConfig

# ${VAR} or ${VAR:-default}
ENV_PATTERN = re.compile(r'\$\{(\w+)(?::-([^}]*))?\}')


class ConfigLoader:
    """Load and validate perf collection configuration."""

    @staticmethod
    def load_from_file(config_path: str, collect_mode: Optional[str] = None) -> PerfSystemConfig:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to YAML configuration file
            collect_mode: Replaces perf.collect_mode before validation

        Returns:
            PerfSystemConfig: Validated configuration object

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
            pydantic.ValidationError: If configuration validation fails
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        raw_config = ConfigLoader.substitute_env_vars(raw_config)

        if collect_mode is not None:
            raw_config['perf'] = dict(raw_config.get('perf') or {}, collect_mode=collect_mode)

        return PerfSystemConfig(**raw_config)

    @staticmethod
    def substitute_env_vars(obj: Any) -> Any:
        """
        Recursively replace ${VAR} and ${VAR:-default} in string values.

        An unset variable without a default becomes an empty string, which
        the models treat as "not configured".
        """
        if isinstance(obj, str):
            return ENV_PATTERN.sub(lambda m: os.getenv(m.group(1), m.group(2) or ''), obj)

        if isinstance(obj, dict):
            return {k: ConfigLoader.substitute_env_vars(v) for k, v in obj.items()}

        if isinstance(obj, list):
            return [ConfigLoader.substitute_env_vars(item) for item in obj]

        return obj
