"""
mdsh settings (MDSH_* environment variables, .env)
"""

from .settings import appsettings, AppSettings

__all__ = ["appsettings", "AppSettings"]
