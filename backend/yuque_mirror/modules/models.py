"""Registry of every metadata store model.

Importing this module puts all tables on ``Base.metadata``.
"""

from .auth.models import AuthSession
from .book.models import Book
from .document.models import Document
from .preference.models import Preference
from .resource.models import Resource
from .sync_history.models import SyncHistory
from .sync_session.models import SyncSession

__all__ = ["AuthSession", "Book", "Document", "Preference", "Resource", "SyncHistory", "SyncSession"]
