# Configuration module
from .settings import settings, Settings, create_settings, load_yaml_config
from .logging import (
    configure_logging,
    get_logger,
    bind_call_context,
    clear_call_context,
)

__all__ = [
    "settings",
    "Settings",
    "create_settings",
    "load_yaml_config",
    "configure_logging",
    "get_logger",
    "bind_call_context",
    "clear_call_context",
]
