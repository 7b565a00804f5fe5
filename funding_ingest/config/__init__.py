"""
Configuration module.

Provides:
- YAML source registry loading with environment substitution
- Runtime settings from the environment / .env
"""

from .loader import ConfigLoader, load_sources, substitute_env_vars
from .settings import Settings

__all__ = ["ConfigLoader", "load_sources", "substitute_env_vars", "Settings"]
