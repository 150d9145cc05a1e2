"""Client environment adapters."""

from .local_environment import JsonFileStorage, LocalClientEnvironment

__all__ = ["JsonFileStorage", "LocalClientEnvironment"]
