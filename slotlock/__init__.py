"""
slotlock - delayed-execution governance engine.

An authority queues operations (target, ordered accounts, opaque payload);
nothing runs until the configured number of slot ticks has passed. The
timelock's own authority and delay change only through the same delay.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .core import ExecutionReceipt
from .errors import (
    AccountMismatch,
    AccountNotFound,
    AlreadyExecuted,
    AlreadyInitialized,
    BatchFull,
    InvalidArgument,
    InvalidState,
    InvocationFailed,
    NotReady,
    TimelockError,
    Unauthorized,
)
from .models import AccountMeta, BatchStatus, Operation, Timelock, Transaction, TransactionBatch
from .program import TimelockProgram

__all__ = [
    "__version__",
    # Program
    "TimelockProgram",
    "ExecutionReceipt",
    # Records
    "AccountMeta",
    "BatchStatus",
    "Operation",
    "Timelock",
    "Transaction",
    "TransactionBatch",
    # Errors
    "AccountMismatch",
    "AccountNotFound",
    "AlreadyExecuted",
    "AlreadyInitialized",
    "BatchFull",
    "InvalidArgument",
    "InvalidState",
    "InvocationFailed",
    "NotReady",
    "TimelockError",
    "Unauthorized",
]
