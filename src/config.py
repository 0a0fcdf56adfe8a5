"""Run settings and configuration errors.

Settings are resolved once per run. Resolution order for each value:
1. Explicit argument (CLI flag)
2. BOXFILE_* environment variable
3. Built-in default

Relative file and directory settings resolve against the project root.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from common import FatalError

DEFAULT_CONFIG_FILE = 'vagrant.yaml'
DEFAULT_LOCAL_CONFIG_FILE = 'vagrant.local.yaml'
DEFAULT_HOOKS_DIR = 'hooks'
DEFAULT_PLAN_FILE = '.boxfile/plan.json'

# Supported backend release range
DEFAULT_VERSION_CONSTRAINT = '>= 2.2.0, < 3.0'


class ConfigError(FatalError):
    """Configuration error."""


class MissingConfigError(ConfigError):
    """Primary configuration file does not exist."""


class EmptyConfigError(ConfigError):
    """Configuration file exists but holds no content."""


@dataclass
class Settings:
    """Resolved settings for a single run.

    Attributes:
        root: Project root; relative paths below resolve against it
        config_file: Primary document (required)
        local_config_file: Override document (optional)
        hooks_dir: Directory scanned for hook definitions
        version_constraint: Supported backend version range
        plan_file: Where the Vagrant backend writes the compiled plan
    """
    root: Path
    config_file: Path
    local_config_file: Path
    hooks_dir: Path
    version_constraint: str = DEFAULT_VERSION_CONSTRAINT
    plan_file: Path = Path(DEFAULT_PLAN_FILE)

    def __post_init__(self):
        self.root = Path(self.root)
        self.config_file = self._resolve(self.config_file)
        self.local_config_file = self._resolve(self.local_config_file)
        self.hooks_dir = self._resolve(self.hooks_dir)
        self.plan_file = self._resolve(self.plan_file)

    def _resolve(self, path) -> Path:
        path = Path(path)
        if path.is_absolute():
            return path
        return self.root / path


def load_settings(
    root: Optional[str] = None,
    config_file: Optional[str] = None,
    local_config_file: Optional[str] = None,
    hooks_dir: Optional[str] = None,
    version_constraint: Optional[str] = None,
    plan_file: Optional[str] = None,
) -> Settings:
    """Resolve run settings from arguments, environment and defaults."""
    env = os.environ
    return Settings(
        root=Path(root or env.get('BOXFILE_ROOT') or Path.cwd()),
        config_file=config_file or env.get('BOXFILE_CONFIG') or DEFAULT_CONFIG_FILE,
        local_config_file=(local_config_file
                           or env.get('BOXFILE_LOCAL_CONFIG')
                           or DEFAULT_LOCAL_CONFIG_FILE),
        hooks_dir=hooks_dir or env.get('BOXFILE_HOOKS_DIR') or DEFAULT_HOOKS_DIR,
        version_constraint=(version_constraint
                            or env.get('BOXFILE_VERSION_CONSTRAINT')
                            or DEFAULT_VERSION_CONSTRAINT),
        plan_file=plan_file or env.get('BOXFILE_PLAN_FILE') or DEFAULT_PLAN_FILE,
    )


def _parse_yaml(path: Path):
    """Parse a YAML file and return its contents (None when empty)."""
    try:
        with open(path, encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
