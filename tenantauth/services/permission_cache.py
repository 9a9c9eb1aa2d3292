"""
In-memory role -> permission cache refreshed in the background.

The cache holds one immutable snapshot and replaces it wholesale on each
successful refresh, so readers see either the old map or the new one. A failed
refresh keeps the previous snapshot. Until the first successful refresh the
map is empty and every check answers False.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import datetime, timezone
from types import MappingProxyType

from sqlalchemy.orm import Session

from tenantauth.services.permissions import RoleGrant, build_permission_map, load_role_grants

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_SECONDS = 10 * 60

GrantLoader = Callable[[], Iterable[RoleGrant]]
Sleep = Callable[[float], Awaitable[None]]

_EMPTY: Mapping[int, frozenset[str]] = MappingProxyType({})


class PermissionCache:
    """Role id -> permission codes, swapped atomically by refresh()."""

    def __init__(
        self,
        loader: GrantLoader,
        interval_seconds: float = DEFAULT_REFRESH_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._loader = loader
        self._interval = interval_seconds
        self._sleep = sleep
        self._snapshot: Mapping[int, frozenset[str]] = _EMPTY
        self._task: asyncio.Task[None] | None = None
        self.last_refreshed_at: datetime | None = None

    @property
    def loaded(self) -> bool:
        return self.last_refreshed_at is not None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def snapshot(self) -> Mapping[int, frozenset[str]]:
        return self._snapshot

    def refresh(self) -> bool:
        """Reload the map from storage. Returns False (and keeps the old map) on failure."""
        logger.info("Refreshing role permission cache")
        try:
            permission_map = build_permission_map(self._loader())
        except Exception:
            logger.exception(
                "Role permission cache refresh failed; keeping previous snapshot (%d roles)",
                len(self._snapshot),
            )
            return False
        self._snapshot = MappingProxyType(permission_map)
        self.last_refreshed_at = datetime.now(timezone.utc)
        logger.info("Role permission cache refreshed: roles=%d", len(permission_map))
        return True

    def check_access(self, role_id: int, permission_code: str) -> bool:
        codes = self._snapshot.get(role_id)
        return codes is not None and permission_code in codes

    def permissions_for(self, role_id: int) -> frozenset[str]:
        return self._snapshot.get(role_id, frozenset())

    def permissions_for_roles(self, role_ids: Iterable[int]) -> list[str]:
        """Union across role_ids, sorted like the live aggregation."""
        snapshot = self._snapshot
        codes: set[str] = set()
        for role_id in role_ids:
            codes |= snapshot.get(role_id, frozenset())
        return sorted(codes)

    async def start(self) -> None:
        """Refresh once, then keep refreshing every interval until stop()."""
        if self.running:
            return
        await asyncio.to_thread(self.refresh)
        self._task = asyncio.create_task(self._run(), name="permission-cache-refresh")
        logger.info("Role permission cache refresh loop started (interval=%ss)", self._interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Role permission cache refresh loop stopped")

    async def _run(self) -> None:
        while True:
            await self._sleep(self._interval)
            await asyncio.to_thread(self.refresh)


def session_grant_loader(session_factory: Callable[[], Session]) -> GrantLoader:
    """Build a loader that opens a short-lived session per refresh."""

    def load() -> list[RoleGrant]:
        db = session_factory()
        try:
            return load_role_grants(db)
        finally:
            db.close()

    return load
