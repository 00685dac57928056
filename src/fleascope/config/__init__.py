"""Connection configuration for FleaScope devices."""

from .base_config import DefaultTriggerPolicy, ScopeConfig
from .scopeconfig import (
    load_scope_config,
    save_scope_config,
    user_config_path,
    validate_scope_section,
)

__all__ = [
    "DefaultTriggerPolicy",
    "ScopeConfig",
    "load_scope_config",
    "save_scope_config",
    "user_config_path",
    "validate_scope_section",
]
