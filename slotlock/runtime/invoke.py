"""
Cross-invocation: dispatching a queued operation to its target program.

Programs register themselves by program id, the way handlers register by
operation name. The invoker looks the target up and hands it the accounts,
payload and the set of identities that authorised the call.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Protocol, Sequence

from ..errors import InvocationFailed, TimelockError
from ..models import AccountMeta

logger = logging.getLogger(__name__)


class Program(ABC):
    """A dispatch target. Raise to signal that the call did not apply."""

    @property
    @abstractmethod
    def program_id(self) -> str:
        ...

    @abstractmethod
    def process(
        self,
        accounts: Sequence[AccountMeta],
        payload: bytes,
        signers: frozenset[str],
    ) -> None:
        ...


class Invoker(Protocol):
    def invoke(
        self,
        target: str,
        accounts: Sequence[AccountMeta],
        payload: bytes,
        signers: frozenset[str],
    ) -> None:
        """Apply the call fully or raise ``InvocationFailed``."""
        ...


class ProgramRegistry:
    """program id -> Program."""

    def __init__(self) -> None:
        self._programs: dict[str, Program] = {}

    def register(self, program: Program) -> None:
        self._programs[program.program_id] = program

    def get(self, program_id: str) -> Program | None:
        return self._programs.get(program_id)

    def list_programs(self) -> list[str]:
        return list(self._programs.keys())

    def clear(self) -> None:
        self._programs.clear()


class RegistryInvoker:
    """Invoker over an in-process ProgramRegistry."""

    def __init__(self, registry: ProgramRegistry):
        self.registry = registry

    def invoke(
        self,
        target: str,
        accounts: Sequence[AccountMeta],
        payload: bytes,
        signers: frozenset[str],
    ) -> None:
        program = self.registry.get(target)
        if program is None:
            raise InvocationFailed(f"unknown target program: {target}", target=target)
        try:
            program.process(list(accounts), payload, signers)
        except TimelockError as e:
            raise InvocationFailed(f"{target} rejected call: {e.code}: {e}", target=target) from e
        except Exception as e:
            logger.warning("program %s raised %s", target, type(e).__name__)
            raise InvocationFailed(f"{target} failed: {type(e).__name__}: {e}", target=target) from e
