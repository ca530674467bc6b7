"""Best-effort follow-up actions run after a primary write has committed."""
import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.middleware.metrics import side_effect_failures_total

logger = logging.getLogger(__name__)

Action = Callable[[], Awaitable[object]]


class SideEffects:
    """Ordered list of independent follow-up actions.

    ``run()`` executes every action in the order it was added. A failing
    action is logged and counted, the session is rolled back so later
    actions start from a clean transaction, and the remaining actions
    still run. Nothing is re-raised.
    """

    def __init__(self, db: Optional[AsyncSession] = None):
        self.db = db
        self._actions: List[Tuple[str, Action]] = []

    def add(self, name: str, action: Action) -> "SideEffects":
        self._actions.append((name, action))
        return self

    def __len__(self) -> int:
        return len(self._actions)

    async def run(self) -> List[Tuple[str, BaseException]]:
        errors: List[Tuple[str, BaseException]] = []
        for name, action in self._actions:
            try:
                await action()
            except Exception as exc:
                logger.exception("Side effect %s failed", name)
                side_effect_failures_total.labels(effect=name).inc()
                errors.append((name, exc))
                await self._reset_session()
        self._actions.clear()
        return errors

    async def _reset_session(self) -> None:
        if self.db is None:
            return
        try:
            await self.db.rollback()
        except Exception:
            logger.exception("Rollback after failed side effect also failed")
