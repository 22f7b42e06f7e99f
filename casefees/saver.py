from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Mapping, Optional

from casefees.store import RecordStore, StoreError
from casefees.utils import get_logger


DEFAULT_QUIESCENCE_SECONDS = 2.0


class DebouncedSaver:
    """Hold case edits locally and write them once edits go quiet.

    Each ``stage`` call restarts the quiescence timer. Flushes are serialized,
    so ``close`` either waits for an in-flight write to finish or cancels the
    pending one; a write is never left half applied. A failed write keeps the
    edits pending for a manual retry.
    """

    def __init__(
        self,
        store: RecordStore,
        case_id: Any,
        delay: float = DEFAULT_QUIESCENCE_SECONDS,
        on_error: Optional[Callable[[StoreError], None]] = None,
    ) -> None:
        self.store = store
        self.case_id = case_id
        self.delay = delay
        self.on_error = on_error
        self.last_error: Optional[StoreError] = None
        self._pending: Dict[str, Any] = {}
        self._timer: Optional[threading.Timer] = None
        self._closed = False
        self._state_lock = threading.Lock()
        self._flush_lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        store: RecordStore,
        case_id: Any,
        settings: Optional[Mapping[str, Any]],
        on_error: Optional[Callable[[StoreError], None]] = None,
    ) -> "DebouncedSaver":
        delay = (settings or {}).get("save", {}).get("quiescence_seconds", DEFAULT_QUIESCENCE_SECONDS)
        return cls(store, case_id, delay=float(delay), on_error=on_error)

    @property
    def pending(self) -> Dict[str, Any]:
        with self._state_lock:
            return dict(self._pending)

    @property
    def closed(self) -> bool:
        return self._closed

    def stage(self, fields: Mapping[str, Any]) -> None:
        with self._state_lock:
            if self._closed:
                raise RuntimeError("Saver is closed")
            self._pending.update(fields)
            self._cancel_timer()
            self._timer = threading.Timer(self.delay, self._on_timer)
            self._timer.daemon = True
            self._timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self) -> None:
        try:
            self.flush()
        except StoreError as exc:
            if self.on_error is not None:
                self.on_error(exc)

    def _write(self, fields: Dict[str, Any]) -> None:
        try:
            self.store.update_case(self.case_id, fields)
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(f"Could not save case {self.case_id}: {exc}") from exc

    def flush(self) -> bool:
        """Write pending edits now. Returns False when there was nothing to save."""
        logger = get_logger()
        with self._flush_lock:
            with self._state_lock:
                self._cancel_timer()
                fields, self._pending = self._pending, {}
            if not fields:
                return False
            try:
                self._write(fields)
            except StoreError as exc:
                with self._state_lock:
                    fields.update(self._pending)
                    self._pending = fields
                    self.last_error = exc
                logger.error("Saving case %s failed: %s", self.case_id, exc)
                raise
            self.last_error = None
            logger.info("Saved case %s fields: %s", self.case_id, sorted(fields))
            return True

    def cancel(self) -> Dict[str, Any]:
        """Drop pending edits. Returns what was discarded."""
        with self._flush_lock:
            with self._state_lock:
                self._cancel_timer()
                dropped, self._pending = self._pending, {}
        return dropped

    def close(self, flush: bool = True) -> None:
        """End the session: flush or cancel pending edits, and refuse new ones."""
        with self._state_lock:
            self._closed = True
        if flush:
            self.flush()
        else:
            self.cancel()
