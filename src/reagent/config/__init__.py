"""
Configuration module.
"""

from .configuration import ConfigManager, Configuration, GenerationOptions

__all__ = ["ConfigManager", "Configuration", "GenerationOptions"]
