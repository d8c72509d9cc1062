"""
The timelock state machine: config store, single-operation queue, batch
manager and execution engine, all over one EngineContext.
"""

from __future__ import annotations

from .batch import BatchManager
from .config import ConfigStore
from .context import EngineContext
from .engine import ExecutionEngine, ExecutionReceipt, match_accounts
from .queue import TransactionQueue

__all__ = [
    "BatchManager",
    "ConfigStore",
    "EngineContext",
    "ExecutionEngine",
    "ExecutionReceipt",
    "TransactionQueue",
    "match_accounts",
]
