"""Stream resolution collaborators."""

from .base import MediaKind, MediaRef, StreamResolver
from .premiumize import PremiumizeFolderResolver

__all__ = ["MediaKind", "MediaRef", "PremiumizeFolderResolver", "StreamResolver"]
