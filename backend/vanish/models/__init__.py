# backend/vanish/models/__init__.py
from .room import Room
from .message import MessageEnvelope
from .blob import BlobEntry, CATEGORY_CHAT, CATEGORY_VAULT

__all__ = ["Room", "MessageEnvelope", "BlobEntry", "CATEGORY_CHAT", "CATEGORY_VAULT"]
