"""
Deterministic vault identity derivation.

A timelock authorises dispatched calls as its vault identity. The vault
has no private key: its identity is a hash of the timelock id and a bump
byte, so anyone can recompute it and nobody can forge it. Only the bump
is stored; the identity is always recomputed from the record.
"""

from __future__ import annotations

import hashlib

VAULT_PREFIX = "vault:"
_DOMAIN = b"slotlock.vault.v1"
MAX_BUMP = 255


def derive_vault(timelock_id: str, bump: int) -> tuple[str, int]:
    """Derive the vault identity for ``timelock_id`` at ``bump``."""
    if not (0 <= bump <= MAX_BUMP):
        raise ValueError(f"bump out of range: {bump}")
    hasher = hashlib.sha256()
    hasher.update(_DOMAIN)
    hasher.update(timelock_id.encode("utf-8"))
    hasher.update(bytes([bump]))
    return (VAULT_PREFIX + hasher.hexdigest(), bump)


def find_vault(timelock_id: str) -> tuple[str, int]:
    """
    Canonical derivation: the highest bump whose identity is usable.

    A candidate is rejected only if it collides with the timelock id.
    """
    for bump in range(MAX_BUMP, -1, -1):
        identity, _ = derive_vault(timelock_id, bump)
        if identity != timelock_id:
            return (identity, bump)
    raise ValueError(f"no usable vault bump for {timelock_id!r}")
