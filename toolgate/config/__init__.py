from .loader import get_config_dir, get_config_file, load_config
from .schema import LimitsConfig, SandboxConfig, StorageConfig
from .validator import ConfigValidator

__all__ = [
    "ConfigValidator",
    "LimitsConfig",
    "SandboxConfig",
    "StorageConfig",
    "get_config_dir",
    "get_config_file",
    "load_config",
]
