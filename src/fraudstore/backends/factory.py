"""Store factory types.

StoreKind is a plain alias while SQLite is the only backend; widen it to a
``kind``-discriminated union when a second backend is added.
"""

from __future__ import annotations

import fraudstore.backends.sqlite as sqlite

StoreKind = sqlite.SqliteStore
