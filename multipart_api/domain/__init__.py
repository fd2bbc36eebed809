from .sessions import (
    DuplicateSessionError,
    InMemorySessionRegistry,
    SessionRegistry,
    UploadSession,
)

__all__ = [
    "DuplicateSessionError",
    "InMemorySessionRegistry",
    "SessionRegistry",
    "UploadSession",
]
