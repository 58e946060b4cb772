# vendorwatch/services/store.py
"""
Document store (implements the DocumentStore interface).

RedisStore
    vw:vendors                  hash   vendor_id -> Vendor JSON
    vw:snapshots:<vendor_id>    list   Snapshot JSON, appended in creation order
    vw:risk_events:<vendor_id>  list   RiskEvent JSON, appended in creation order
  Lists are append-only, so the last element is the latest record.

InMemoryStore
    Same behaviour on plain dicts; used by tests and dry runs.
"""
from __future__ import annotations
import logging
from typing import Dict, List, Optional

from redis import Redis

from vendorwatch.models import RiskEvent, Snapshot, Vendor
from vendorwatch.services.rate_limiter import get_redis

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

KEY_PREFIX = "vw"


class RedisStore:
    def __init__(self, client: Optional[Redis] = None, prefix: str = KEY_PREFIX):
        self.r = client if client is not None else get_redis()
        if self.r is None:
            raise RuntimeError("Redis unavailable; set REDIS_URL or pass a client")
        self.prefix = prefix

    def _vendors_key(self) -> str:
        return f"{self.prefix}:vendors"

    def _snapshots_key(self, vendor_id: str) -> str:
        return f"{self.prefix}:snapshots:{vendor_id}"

    def _events_key(self, vendor_id: str) -> str:
        return f"{self.prefix}:risk_events:{vendor_id}"

    def add_vendor(self, vendor: Vendor) -> None:
        self.r.hset(self._vendors_key(), vendor.id, vendor.model_dump_json())

    def list_vendors(self) -> List[Vendor]:
        raw = self.r.hgetall(self._vendors_key()) or {}
        vendors = [Vendor.model_validate_json(v) for v in raw.values()]
        return sorted(vendors, key=lambda v: (v.created_at, v.id))

    def save_snapshot(self, snapshot: Snapshot) -> None:
        self.r.rpush(self._snapshots_key(snapshot.vendor_id), snapshot.model_dump_json())

    def latest_snapshot(self, vendor_id: str) -> Optional[Snapshot]:
        raw = self.r.lindex(self._snapshots_key(vendor_id), -1)
        return Snapshot.model_validate_json(raw) if raw else None

    def list_snapshots(self, vendor_id: str) -> List[Snapshot]:
        return [Snapshot.model_validate_json(s) for s in self.r.lrange(self._snapshots_key(vendor_id), 0, -1)]

    def save_risk_event(self, event: RiskEvent) -> None:
        self.r.rpush(self._events_key(event.vendor_id), event.model_dump_json())

    def list_risk_events(self, vendor_id: str) -> List[RiskEvent]:
        return [RiskEvent.model_validate_json(e) for e in self.r.lrange(self._events_key(vendor_id), 0, -1)]


class InMemoryStore:
    def __init__(self, vendors: Optional[List[Vendor]] = None):
        self.vendors: Dict[str, Vendor] = {}
        self.snapshots: Dict[str, List[Snapshot]] = {}
        self.risk_events: Dict[str, List[RiskEvent]] = {}
        for v in vendors or []:
            self.add_vendor(v)

    def add_vendor(self, vendor: Vendor) -> None:
        self.vendors[vendor.id] = vendor

    def list_vendors(self) -> List[Vendor]:
        return list(self.vendors.values())

    def save_snapshot(self, snapshot: Snapshot) -> None:
        self.snapshots.setdefault(snapshot.vendor_id, []).append(snapshot)

    def latest_snapshot(self, vendor_id: str) -> Optional[Snapshot]:
        items = self.snapshots.get(vendor_id)
        return items[-1] if items else None

    def list_snapshots(self, vendor_id: str) -> List[Snapshot]:
        return list(self.snapshots.get(vendor_id, []))

    def save_risk_event(self, event: RiskEvent) -> None:
        self.risk_events.setdefault(event.vendor_id, []).append(event)

    def list_risk_events(self, vendor_id: str) -> List[RiskEvent]:
        return list(self.risk_events.get(vendor_id, []))
