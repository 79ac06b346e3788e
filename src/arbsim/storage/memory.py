"""
In-memory record store.

Bounded, process-local storage for prices, opportunities, trades and
notifications, plus the current trading settings. Every collection is
capped; opportunities additionally expire after a TTL. Query methods
return records newest first.
"""

import logging
from collections import OrderedDict, deque
from collections.abc import Mapping

from arbsim.config.constants import (
    ACTIVE_OPPORTUNITY_LIMIT,
    DEFAULT_MAX_NOTIFICATIONS,
    DEFAULT_MAX_OPPORTUNITIES,
    DEFAULT_MAX_PRICE_TICKS,
    DEFAULT_MAX_TRADES,
    DEFAULT_OPPORTUNITY_TTL_SECONDS,
    RECENT_TRADES_LIMIT,
)
from arbsim.config.settings import TradingSettings
from arbsim.core.errors import CollaboratorUnavailable
from arbsim.core.types import Notification, Opportunity, OpportunityStatus, PriceTick, Trade
from arbsim.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)


class InMemoryRecordStore:
    """
    RecordStore and SettingsProvider backed by bounded containers.

    Features:
    - Count caps on every collection (oldest evicted first)
    - TTL on opportunities
    - Validated settings updates
    - close() makes every call raise CollaboratorUnavailable
    """

    def __init__(
        self,
        settings: TradingSettings | None = None,
        opportunity_ttl_s: float = DEFAULT_OPPORTUNITY_TTL_SECONDS,
        max_opportunities: int = DEFAULT_MAX_OPPORTUNITIES,
        max_trades: int = DEFAULT_MAX_TRADES,
        max_price_ticks: int = DEFAULT_MAX_PRICE_TICKS,
        max_notifications: int = DEFAULT_MAX_NOTIFICATIONS,
    ) -> None:
        """
        Initialize store.

        Args:
            settings: Initial trading settings.
            opportunity_ttl_s: Seconds an opportunity stays active.
            max_opportunities: Maximum opportunities kept.
            max_trades: Maximum trades kept.
            max_price_ticks: Maximum price ticks kept.
            max_notifications: Maximum notifications kept.
        """
        self._settings = settings or TradingSettings()
        self._opportunity_ttl_ms = int(opportunity_ttl_s * 1000)
        self._max_opportunities = max_opportunities
        self._max_notifications = max_notifications

        self._prices: deque[PriceTick] = deque(maxlen=max_price_ticks)
        self._opportunities: OrderedDict[str, Opportunity] = OrderedDict()
        self._trades: deque[Trade] = deque(maxlen=max_trades)
        self._notifications: OrderedDict[str, Notification] = OrderedDict()
        self._closed = False

    def _ensure_open(self) -> None:
        if self._closed:
            raise CollaboratorUnavailable("Record store is closed")

    # =========================================================================
    # Settings
    # =========================================================================

    async def get_settings(self) -> TradingSettings:
        self._ensure_open()
        return self._settings

    async def update_settings(self, updates: Mapping[str, object]) -> TradingSettings:
        """
        Apply a partial settings update.

        Raises:
            ValidationError: If the result is not a valid settings record.
        """
        self._ensure_open()
        self._settings = self._settings.merged(dict(updates))
        logger.info(f"Settings updated: {', '.join(sorted(updates)) or 'no changes'}")
        return self._settings

    # =========================================================================
    # Prices
    # =========================================================================

    async def add_price(self, tick: PriceTick) -> PriceTick:
        self._ensure_open()
        self._prices.append(tick)
        return tick

    async def get_recent_prices(self, limit: int = 50) -> list[PriceTick]:
        self._ensure_open()
        return list(reversed(self._prices))[:limit]

    # =========================================================================
    # Opportunities
    # =========================================================================

    async def add_opportunity(self, opportunity: Opportunity) -> Opportunity:
        self._ensure_open()
        self._opportunities[opportunity.id] = opportunity
        while len(self._opportunities) > self._max_opportunities:
            self._opportunities.popitem(last=False)
        return opportunity

    async def get_opportunity(self, opportunity_id: str) -> Opportunity | None:
        self._ensure_open()
        self._expire_opportunities()
        return self._opportunities.get(opportunity_id)

    async def get_active_opportunities(
        self, limit: int = ACTIVE_OPPORTUNITY_LIMIT
    ) -> list[Opportunity]:
        """Get active opportunities, newest first."""
        self._ensure_open()
        self._expire_opportunities()
        active = [
            opp
            for opp in reversed(self._opportunities.values())
            if opp.status == OpportunityStatus.ACTIVE
        ]
        return active[:limit]

    def _expire_opportunities(self) -> None:
        cutoff = get_timestamp_ms() - self._opportunity_ttl_ms
        while self._opportunities:
            oldest = next(iter(self._opportunities.values()))
            if oldest.detected_at_ms >= cutoff:
                break
            self._opportunities.popitem(last=False)

    # =========================================================================
    # Trades
    # =========================================================================

    async def add_trade(self, trade: Trade) -> Trade:
        self._ensure_open()
        self._trades.append(trade)
        return trade

    async def get_all_trades(self) -> list[Trade]:
        """Get every stored trade, newest first."""
        self._ensure_open()
        return list(reversed(self._trades))

    async def get_recent_trades(self, limit: int = RECENT_TRADES_LIMIT) -> list[Trade]:
        self._ensure_open()
        return list(reversed(self._trades))[:limit]

    # =========================================================================
    # Notifications
    # =========================================================================

    async def add_notification(self, notification: Notification) -> Notification:
        self._ensure_open()
        self._notifications[notification.id] = notification
        while len(self._notifications) > self._max_notifications:
            self._notifications.popitem(last=False)
        return notification

    async def get_notifications(self, unread_only: bool = False) -> list[Notification]:
        """Get notifications, newest first."""
        self._ensure_open()
        return [
            n
            for n in reversed(self._notifications.values())
            if not (unread_only and n.is_read)
        ]

    async def mark_notification_read(self, notification_id: str) -> bool:
        """
        Mark a notification as read.

        Returns:
            False if no such notification exists.
        """
        self._ensure_open()
        notification = self._notifications.get(notification_id)
        if notification is None:
            return False
        notification.is_read = True
        return True

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def clear(self) -> None:
        """Drop every record; settings are kept."""
        self._ensure_open()
        self._prices.clear()
        self._opportunities.clear()
        self._trades.clear()
        self._notifications.clear()

    def close(self) -> None:
        self._closed = True

    def reopen(self) -> None:
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def counts(self) -> dict[str, int]:
        """Get record counts per collection."""
        return {
            "prices": len(self._prices),
            "opportunities": len(self._opportunities),
            "trades": len(self._trades),
            "notifications": len(self._notifications),
        }
