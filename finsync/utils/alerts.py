"""
Alert Book
Local mirror of the backend alert stream. Owns the read/unread set; marking an alert read
updates local state first and relays to the backend, rolling back if the relay fails.
"""
import logging
from typing import Dict, List, Optional, Set

from finsync.core.errors import GatewayError
from finsync.models.alert import Alert, AlertFilter

logger = logging.getLogger(__name__)


class AlertBook:
    def __init__(self, gateway) -> None:
        self._gateway = gateway
        self._alerts: Dict[str, Alert] = {}
        self._read_ids: Set[str] = set()
        self.last_error: Optional[str] = None

    def load(self, alerts: List[Alert]) -> None:
        """Replace the stream. Ids already marked read locally stay read; ids no longer listed are forgotten."""
        self._read_ids &= {alert.id for alert in alerts}
        self._alerts = {}
        for alert in alerts:
            if alert.is_read:
                self._read_ids.add(alert.id)
            self._alerts[alert.id] = alert.model_copy(update={"is_read": alert.id in self._read_ids})

    async def refresh(self) -> List[Alert]:
        try:
            alerts = await self._gateway.get_alerts()
        except GatewayError as e:
            logger.error(f"Failed to refresh alerts: {e}")
            self.last_error = "Failed to load alerts"
            return self.filter(AlertFilter.ALL)
        self.last_error = None
        self.load(alerts)
        return self.filter(AlertFilter.ALL)

    def get(self, alert_id: str) -> Optional[Alert]:
        return self._alerts.get(alert_id)

    def filter(self, which: AlertFilter = AlertFilter.ALL) -> List[Alert]:
        alerts = list(self._alerts.values())
        if which == AlertFilter.UNREAD:
            return [a for a in alerts if not a.is_read]
        if which == AlertFilter.READ:
            return [a for a in alerts if a.is_read]
        return alerts

    @property
    def unread_count(self) -> int:
        return sum(1 for a in self._alerts.values() if not a.is_read)

    async def mark_read(self, alert_id: str) -> bool:
        """
        Idempotent: an alert that is already read returns True without another relay.
        Returns False for an unknown id or when the backend refuses the change.
        """
        alert = self._alerts.get(alert_id)
        if alert is None:
            return False
        if alert.is_read:
            return True

        self._set_read(alert_id, True)
        try:
            accepted = await self._gateway.mark_alert_read(alert_id)
        except GatewayError as e:
            logger.warning(f"Failed to relay read flag for alert {alert_id}: {e}")
            accepted = False

        if not accepted:
            self._set_read(alert_id, False)
            self.last_error = "Failed to mark alert as read"
            return False
        return True

    def _set_read(self, alert_id: str, read: bool) -> None:
        if read:
            self._read_ids.add(alert_id)
        else:
            self._read_ids.discard(alert_id)
        alert = self._alerts.get(alert_id)
        if alert is not None:
            self._alerts[alert_id] = alert.model_copy(update={"is_read": read})
