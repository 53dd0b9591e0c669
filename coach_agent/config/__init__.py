"""Configuration module."""

from coach_agent.config.schema import Config
from coach_agent.config.loader import ensure_data_dir, load_config, save_default_config

__all__ = ["Config", "load_config", "save_default_config", "ensure_data_dir"]
