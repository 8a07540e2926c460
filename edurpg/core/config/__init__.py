from edurpg.core.config.io import LoadedConfig, load_app_config, read_json_file
from edurpg.core.config.models import AppConfigFile, LoggingConfigFile, RateLimitRule, RateLimitsConfigFile, RedactionConfigFile

__all__ = [
    "AppConfigFile",
    "LoadedConfig",
    "LoggingConfigFile",
    "RateLimitRule",
    "RateLimitsConfigFile",
    "RedactionConfigFile",
    "load_app_config",
    "read_json_file",
]
