"""Team roster backed by the `team_members` collection."""

import logging
from typing import Callable, List, Optional

from core.interfaces.persistence import (
    TEAM_MEMBERS,
    IPersistenceGateway,
    StorageError,
    Subscription,
)
from core.models.team import TeamMember

logger = logging.getLogger(__name__)

RosterListener = Callable[[List[TeamMember]], None]


class TeamRoster:
    """Active team members ordered by display_order.

    While started, every change to `team_members` triggers a refetch and the
    fresh list is handed to the registered listeners.
    """

    def __init__(self, gateway: IPersistenceGateway):
        self._gateway = gateway
        self._members: List[TeamMember] = []
        self._subscription: Optional[Subscription] = None
        self._listeners: List[RosterListener] = []
        self.loading = False
        self.error: Optional[str] = None

    @property
    def members(self) -> List[TeamMember]:
        return list(self._members)

    def fetch(self) -> List[TeamMember]:
        """Reload the roster; on failure keep the last list and set ``error``."""
        self.loading = True
        try:
            rows = self._gateway.select(
                TEAM_MEMBERS,
                filters={"is_active": True},
                order_by="display_order",
                ascending=True,
            )
            self._members = [TeamMember.from_row(row) for row in rows]
            self.error = None
            logger.debug(f"Fetched {len(self._members)} team members")
        except StorageError as e:
            self.error = str(e)
            logger.error(f"Failed to fetch team members: {e}")
        finally:
            self.loading = False
        return self.members

    def add_listener(self, listener: RosterListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: RosterListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def start(self) -> List[TeamMember]:
        """Fetch once and subscribe to changes."""
        members = self.fetch()
        if self._subscription is None:
            self._subscription = self._gateway.subscribe(TEAM_MEMBERS, self._on_change)
            logger.info("Team roster subscribed to changes")
        return members

    def stop(self) -> None:
        """Unsubscribe from changes."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
            logger.info("Team roster unsubscribed")

    def _on_change(self, change: dict) -> None:
        logger.debug(f"team_members {change.get('action')}, refetching")
        members = self.fetch()
        for listener in list(self._listeners):
            try:
                listener(members)
            except Exception as e:
                logger.error(f"Roster listener failed: {e}", exc_info=True)
