"""Signing key sources"""

from .file_source import FileKeySource
from .in_memory_source import InMemoryKeySource
from .secrets_manager_source import SecretsManagerKeySource

__all__ = ["FileKeySource", "InMemoryKeySource", "SecretsManagerKeySource"]
