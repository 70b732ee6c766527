from .auth import User, SessionToken
from .documents import StoredDocument

__all__ = [
    'User', 'SessionToken',
    'StoredDocument',
]
