"""Scope configuration handling for FleaScope.

Connections are configured through INI files, one section per scope:

[bench]
port = /dev/ttyACM0
command_timeout = 2.0
retries = 3
default_trigger_policy = digital_free_run
read_calibrations = yes

Any key left out keeps its `ScopeConfig` default.

See Also
--------
fleascope.config.base_config : The ScopeConfig dataclass
"""

from __future__ import annotations

from configparser import ConfigParser
from dataclasses import fields
from pathlib import Path
from typing import Optional

from loguru import logger

from fleascope.config.base_config import ScopeConfig


def user_config_path() -> Path:
    return Path.home() / ".fleascope" / "scopes.ini"


def validate_scope_section(config: ConfigParser, section: str) -> tuple[bool, str]:
    """Validate a scope configuration section.

    Parameters
    ----------
    config : ConfigParser
        ConfigParser instance containing the configuration
    section : str
        Name of the section to validate

    Returns
    -------
    tuple[bool, str]
        (is_valid, error_message)
    """
    known = {f.name for f in fields(ScopeConfig)}
    unknown = [key for key in config[section] if key not in known]
    if unknown:
        return False, f"Unknown keys in [{section}]: {', '.join(sorted(unknown))}"
    return True, ""


def _section_to_dict(config: ConfigParser, section: str) -> dict:
    values = {}
    for f in fields(ScopeConfig):
        if f.name not in config[section]:
            continue
        if f.type in ("bool", bool):
            values[f.name] = config.getboolean(section, f.name)
        elif f.type in ("int", int):
            values[f.name] = config.getint(section, f.name)
        elif f.type in ("float", float):
            values[f.name] = config.getfloat(section, f.name)
        else:
            values[f.name] = config.get(section, f.name)
    return values


def load_scope_config(name: str, path: Optional[str | Path] = None) -> ScopeConfig:
    """Load a scope configuration from an INI file.

    Parameters
    ----------
    name : str
        Section name of the scope
    path : str | Path, optional
        INI file to read, by default ~/.fleascope/scopes.ini

    Returns
    -------
    ScopeConfig
        Loaded and validated configuration. Defaults if the file or section
        does not exist.

    Raises
    ------
    ValueError
        If the section holds unknown keys or invalid values
    """
    path = Path(path) if path is not None else user_config_path()
    if not path.exists():
        logger.debug("No scope config file at {}, using defaults", path)
        return ScopeConfig()

    config = ConfigParser()
    config.read(path)
    if not config.has_section(name):
        logger.debug("No section [{}] in {}, using defaults", name, path)
        return ScopeConfig()

    is_valid, msg = validate_scope_section(config, name)
    if not is_valid:
        logger.error("Invalid scope config in {}: {}", path, msg)
        raise ValueError(msg)

    scope_config = ScopeConfig.from_dict(_section_to_dict(config, name))
    scope_config.validate()
    logger.info("Loaded scope config [{}] from {}", name, path)
    return scope_config


def save_scope_config(
    name: str, scope_config: ScopeConfig, path: Optional[str | Path] = None
) -> Path:
    """Write (or replace) a scope section in an INI file."""
    path = Path(path) if path is not None else user_config_path()
    config = ConfigParser()
    if path.exists():
        config.read(path)
    config[name] = {key: str(value) for key, value in scope_config.to_dict().items()}
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        config.write(f)
    logger.info("Saved scope config [{}] to {}", name, path)
    return path
