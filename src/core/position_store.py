from __future__ import annotations

import json
import os
import tempfile
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from src.core.errors import PositionStoreError
from src.models.position import IMMUTABLE_FIELDS, AlertKind, AlertsSent, Position, utcnow


@dataclass
class PositionStore:
    """Keyed position collection persisted as a single JSON file.

    The in-memory map is canonical. Every operation runs under a lock owned
    by this instance, and every write rewrites the whole file atomically
    before the new map becomes visible. A failed write leaves both the file
    and the map as they were.
    """

    path: str

    _positions: Dict[str, Position] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)
    _opened: bool = field(default=False, init=False)

    def open(self) -> None:
        with self._lock:
            self._positions = self._read_file()
            self._opened = True

    def close(self) -> None:
        with self._lock:
            self._opened = False
            self._positions = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._positions)

    def list(self) -> List[Position]:
        with self._lock:
            self._ensure_open()
            return list(self._positions.values())

    def get(self, position_id: str) -> Optional[Position]:
        with self._lock:
            self._ensure_open()
            return self._positions.get(position_id)

    def create(
        self,
        *,
        market_id: str,
        outcome: str,
        market_url: str,
        market_question: str,
        entry_price: float,
        quantity: float,
        take_profit: float = 1.0,
        stop_loss: float = 0.0,
        current_price: Optional[float] = None,
        last_updated: Optional[datetime] = None,
    ) -> Position:
        with self._lock:
            self._ensure_open()

            position_id = uuid.uuid4().hex
            while position_id in self._positions:
                position_id = uuid.uuid4().hex

            position = Position(
                id=position_id,
                market_id=market_id,
                outcome=outcome,
                market_url=market_url,
                market_question=market_question,
                entry_price=float(entry_price),
                quantity=float(quantity),
                take_profit=float(take_profit),
                stop_loss=float(stop_loss),
                created_at=utcnow(),
                current_price=current_price,
                last_updated=last_updated,
                alerts_sent=AlertsSent(),
            )

            self._commit({**self._positions, position.id: position})
            return position

    def update(self, position_id: str, **fields: Any) -> Optional[Position]:
        """Shallow-merge ``fields`` into a position. Returns None if unknown.

        ``alerts_sent`` is merged, never lowered.
        """
        immutable = IMMUTABLE_FIELDS.intersection(fields)
        if immutable:
            raise ValueError(f"Immutable fields cannot be updated: {sorted(immutable)}")

        with self._lock:
            self._ensure_open()

            current = self._positions.get(position_id)
            if current is None:
                return None

            alerts = fields.pop("alerts_sent", None)
            if alerts is not None:
                fields["alerts_sent"] = current.alerts_sent.merge(alerts)

            updated = replace(current, **fields)
            self._commit({**self._positions, position_id: updated})
            return updated

    def record_price(self, position_id: str, price: float, at: Optional[datetime] = None) -> Optional[Position]:
        return self.update(position_id, current_price=float(price), last_updated=at or utcnow())

    def latch_alert(self, position_id: str, kind: AlertKind) -> Optional[Position]:
        with self._lock:
            current = self.get(position_id)
            if current is None:
                return None
            if current.alerts_sent.is_set(kind):
                return current
            return self.update(position_id, alerts_sent=current.alerts_sent.latch(kind))

    def delete(self, position_id: str) -> bool:
        with self._lock:
            self._ensure_open()

            if position_id not in self._positions:
                return False

            remaining = {k: v for k, v in self._positions.items() if k != position_id}
            self._commit(remaining)
            return True

    def _ensure_open(self) -> None:
        if not self._opened:
            raise PositionStoreError("Position store is not open")

    def _commit(self, positions: Dict[str, Position]) -> None:
        self._write_file(positions)
        self._positions = positions

    def _read_file(self) -> Dict[str, Position]:
        if not os.path.exists(self.path):
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            raise PositionStoreError(f"Failed to read positions from {self.path}: {e}") from e

        if not isinstance(raw, list):
            raise PositionStoreError(f"Expected a list of positions in {self.path}")

        out: Dict[str, Position] = {}
        for item in raw:
            try:
                position = Position.from_dict(item)
            except (KeyError, TypeError, ValueError) as e:
                raise PositionStoreError(f"Malformed position record in {self.path}: {e}") from e
            out[position.id] = position
        return out

    def _write_file(self, positions: Dict[str, Position]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        payload = [p.to_dict() for p in positions.values()]

        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".positions-", suffix=".json", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise PositionStoreError(f"Failed to write positions to {self.path}: {e}") from e
