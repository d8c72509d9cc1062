"""
Config store: the Timelock record.

``authority`` and ``delay_ticks`` change only through governed calls, i.e.
calls dispatched by the execution engine and signed by the timelock's own
vault identity. That is what makes changing the rules subject to the delay.
"""

from __future__ import annotations

import logging
from typing import Iterable

from ..errors import InvalidArgument, Unauthorized
from ..events import TIMELOCK_AUTHORITY_SET, TIMELOCK_DELAY_SET, TIMELOCK_INITIALIZED
from ..models import KIND_TIMELOCK, Timelock
from ..runtime.derivation import find_vault
from ..util import new_ulid
from .context import EngineContext

logger = logging.getLogger(__name__)


def _check_delay(delay_ticks: object) -> int:
    if isinstance(delay_ticks, bool) or not isinstance(delay_ticks, int) or delay_ticks < 0:
        raise InvalidArgument(f"delay_ticks must be a non-negative integer, got {delay_ticks!r}")
    return delay_ticks


class ConfigStore:
    def __init__(self, ctx: EngineContext):
        self.ctx = ctx

    def initialize(
        self,
        authority: str,
        delay_ticks: int,
        *,
        timelock_id: str | None = None,
    ) -> Timelock:
        """Create the Timelock record. Fails with AlreadyInitialized if it exists."""
        if not authority:
            raise InvalidArgument("authority must not be empty")
        delay_ticks = _check_delay(delay_ticks)
        timelock_id = timelock_id or new_ulid()

        _, bump = find_vault(timelock_id)
        timelock = Timelock(
            timelock_id=timelock_id,
            authority=authority,
            delay_ticks=delay_ticks,
            vault_bump=bump,
        )
        self.ctx.store.create(KIND_TIMELOCK, timelock_id, timelock.to_dict())

        vault = self.ctx.vault_identity(timelock)
        self.ctx.record(
            TIMELOCK_INITIALIZED,
            timelock_id,
            authority,
            payload={"authority": authority, "delay_ticks": delay_ticks, "vault": vault, "vault_bump": bump},
        )
        logger.info("initialized timelock %s (delay=%d, vault=%s)", timelock_id, delay_ticks, vault)
        return timelock

    def load(self, timelock_id: str) -> Timelock:
        return self.ctx.load_timelock(timelock_id)

    def vault_identity(self, timelock_id: str) -> str:
        return self.ctx.vault_identity(self.ctx.load_timelock(timelock_id))

    def _require_vault(self, timelock: Timelock, signers: Iterable[str]) -> str:
        vault = self.ctx.vault_identity(timelock)
        if vault not in set(signers):
            raise Unauthorized(
                f"governed call on {timelock.timelock_id} must be signed by its vault",
                timelock=timelock.timelock_id,
            )
        return vault

    def set_authority(self, timelock_id: str, new_authority: str, signers: Iterable[str]) -> Timelock:
        timelock = self.ctx.load_timelock(timelock_id)
        vault = self._require_vault(timelock, signers)
        if not new_authority:
            raise InvalidArgument("new authority must not be empty")

        previous = timelock.authority
        timelock.authority = new_authority
        self.ctx.save_timelock(timelock)
        self.ctx.record(
            TIMELOCK_AUTHORITY_SET,
            timelock_id,
            vault,
            payload={"previous": previous, "authority": new_authority},
        )
        logger.info("timelock %s authority %s -> %s", timelock_id, previous, new_authority)
        return timelock

    def set_delay(self, timelock_id: str, new_delay_ticks: int, signers: Iterable[str]) -> Timelock:
        timelock = self.ctx.load_timelock(timelock_id)
        vault = self._require_vault(timelock, signers)
        new_delay_ticks = _check_delay(new_delay_ticks)

        previous = timelock.delay_ticks
        timelock.delay_ticks = new_delay_ticks
        self.ctx.save_timelock(timelock)
        self.ctx.record(
            TIMELOCK_DELAY_SET,
            timelock_id,
            vault,
            payload={"previous": previous, "delay_ticks": new_delay_ticks},
        )
        logger.info("timelock %s delay %d -> %d", timelock_id, previous, new_delay_ticks)
        return timelock
