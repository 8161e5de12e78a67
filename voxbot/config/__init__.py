"""Configuration module for voxbot."""

from voxbot.config.loader import get_config_path, load_config
from voxbot.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path"]
