"""Credential persistence."""

from .base import CredentialStore, load_credential, save_credential
from .file_store import FileCredentialStore
from .memory import MemoryCredentialStore

__all__ = [
    "CredentialStore",
    "FileCredentialStore",
    "MemoryCredentialStore",
    "load_credential",
    "save_credential",
]
