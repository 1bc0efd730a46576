from .config import RuntimeConfig, RuntimeConfigurationError
from .engine import FocusRuntime, RuntimeBootstrap

__all__ = [
    "FocusRuntime",
    "RuntimeBootstrap",
    "RuntimeConfig",
    "RuntimeConfigurationError",
]
