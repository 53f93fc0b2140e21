from . import _compat as _compat  # noqa: F401  -- Python 3.14 sqlglot workaround

from .backends import PurgeResult, SqliteStore
from .project import FraudProject, connect
from .records import Customer, ModelRun, Prediction, Transaction
from .views import ReportEngine

__all__ = [
    # records
    "Customer",
    "Transaction",
    "Prediction",
    "ModelRun",
    # store
    "SqliteStore",
    "PurgeResult",
    # reporting
    "ReportEngine",
    # project
    "FraudProject",
    "connect",
]
