"""Async SQLite access for the grainwatch application.

Only the durable alert store uses the database; readings live in memory.
"""

from grainwatch.lib.db.connection import Database as Database
from grainwatch.lib.db.connection import load_template as load_template
from grainwatch.lib.db.types import AlertRow as AlertRow
from grainwatch.lib.db.types import SQLParams as SQLParams
