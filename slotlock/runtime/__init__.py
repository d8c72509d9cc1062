"""
Host services the timelock engine calls but does not implement:
the slot clock, vault derivation, cross-invocation and account storage.
"""

from __future__ import annotations

from .clock import Clock, FileClock, ManualClock, WallClock
from .derivation import derive_vault, find_vault
from .invoke import Invoker, Program, ProgramRegistry, RegistryInvoker
from .storage import AccountStore, FileAccountStore, MemoryAccountStore

__all__ = [
    # Clock
    "Clock",
    "FileClock",
    "ManualClock",
    "WallClock",
    # Derivation
    "derive_vault",
    "find_vault",
    # Invocation
    "Invoker",
    "Program",
    "ProgramRegistry",
    "RegistryInvoker",
    # Storage
    "AccountStore",
    "FileAccountStore",
    "MemoryAccountStore",
]
