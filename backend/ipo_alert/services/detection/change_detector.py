"""
Change detection against the last observed snapshot per domain.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from ipo_alert.services.market.sources import ipo_identity

logger = logging.getLogger(__name__)

MARKET_STATUS = "marketStatus"
ONGOING_IPOS = "ongoingIpos"
UPCOMING_IPOS = "upcomingIpos"

_MISSING = object()


@dataclass
class ChangeEvent:
    """One detected transition in a domain."""
    domain: str
    kind: str
    details: Dict[str, Any] = field(default_factory=dict)


class SnapshotStore:
    """Last-seen value per domain. Absent means no prior observation."""

    def __init__(self):
        self._snapshots: Dict[str, Any] = {}

    def get(self, domain: str, default: Any = None) -> Any:
        return self._snapshots.get(domain, default)

    def has(self, domain: str) -> bool:
        return domain in self._snapshots

    def set(self, domain: str, value: Any):
        self._snapshots[domain] = value

    def domains(self) -> List[str]:
        return list(self._snapshots)


def market_status_delta(domain: str, prev: Any, curr: Any) -> List[ChangeEvent]:
    prev_status = (prev or {}).get("status")
    curr_status = (curr or {}).get("status")
    if curr_status == prev_status:
        return []
    kind = {"open": "opened", "closed": "closed"}.get(curr_status, "changed")
    return [ChangeEvent(domain=domain, kind=kind, details={"previous": prev_status, "current": curr_status})]


def ipo_list_delta(domain: str, prev: Any, curr: Any) -> List[ChangeEvent]:
    """Entries of curr whose identity is not in prev. Removals are ignored."""
    seen = {ipo_identity(entry) for entry in (prev or [])}
    added = []
    for entry in curr or []:
        identity = ipo_identity(entry)
        if identity is None or identity in seen:
            continue
        seen.add(identity)
        added.append(entry)
    if not added:
        return []
    return [ChangeEvent(domain=domain, kind="added", details={"entries": added})]


DeltaRule = Callable[[str, Any, Any], List[ChangeEvent]]

DEFAULT_RULES: Dict[str, DeltaRule] = {
    MARKET_STATUS: market_status_delta,
    ONGOING_IPOS: ipo_list_delta,
    UPCOMING_IPOS: ipo_list_delta,
}


class ChangeDetector:
    """Compares new snapshots with stored ones and emits ChangeEvents."""

    def __init__(self, snapshot_store: SnapshotStore, rules: Optional[Dict[str, DeltaRule]] = None):
        self.snapshot_store = snapshot_store
        self.rules = dict(DEFAULT_RULES if rules is None else rules)

    def observe(self, domain: str, curr: Any) -> List[ChangeEvent]:
        """Record curr as the domain's snapshot and return the changes since the previous one.

        The first observation of a domain only seeds the snapshot.
        """
        rule = self.rules.get(domain)
        if rule is None:
            raise KeyError(f"No change rule registered for domain '{domain}'")

        prev = self.snapshot_store.get(domain, _MISSING)
        self.snapshot_store.set(domain, curr)

        if prev is _MISSING:
            logger.info(f"First snapshot for {domain}, nothing to compare")
            return []

        events = rule(domain, prev, curr)
        if events:
            logger.info(f"Detected {len(events)} change(s) in {domain}: {[e.kind for e in events]}")
        return events
