"""Configuration module for crediagent.

This module provides model identity and execution option models, and
loading of model lists from YAML files or the environment.
"""

from crediagent.config.loader import (
    ConfigLoader,
    default_models_from_env,
    load_config,
    load_config_string,
)
from crediagent.config.schema import AgentsConfig, ExecutionOptions, ModelIdentity

__all__ = [
    "AgentsConfig",
    "ConfigLoader",
    "ExecutionOptions",
    "ModelIdentity",
    "default_models_from_env",
    "load_config",
    "load_config_string",
]
