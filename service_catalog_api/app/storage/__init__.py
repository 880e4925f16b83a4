"""
Persistence layer.

``base.CatalogStore`` declares the operations the handlers rely on;
``sqlite.SQLiteCatalogStore`` implements them on top of ``sqlite3``.
"""

from .base import CatalogStore  # noqa: F401
from .sqlite import SQLiteCatalogStore  # noqa: F401
