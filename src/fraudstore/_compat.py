"""Interpreter compatibility shims, applied once from ``__init__.py``.

On Python 3.14+ the ``decimal`` module raises ``InvalidOperation`` when
sqlglot builds its Oracle ``binary_double_nan`` literal, which breaks the
import of the Ibis SQL compilers used by the reporting views. The trap is
switched off before Ibis is first imported and left off, since sqlglot
loads dialect modules lazily.
"""

from __future__ import annotations

import decimal as _decimal

_decimal.getcontext().traps[_decimal.InvalidOperation] = False
