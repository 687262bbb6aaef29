from __future__ import annotations

from typing import Callable, Generic, List, Optional, Tuple, TypeVar

from common.logging_setup import get_logger


log = get_logger("location.registry")

O = TypeVar("O")
V = TypeVar("V")

Deliver = Callable[[O, V], None]


class ObserverRegistry(Generic[O, V]):
    """
    Ordered multicast list with replay-on-join.

    - add(observer): registers and, when `snapshot()` returns a value, delivers
      it to that observer through `deliver` before returning.
    - notify_all(value[, deliver]): calls every observer in insertion order.

    add/remove requested while a delivery is running (from inside a callback)
    are queued and applied in request order once the outermost delivery
    finishes, so the pass in progress sees a stable list. An add withdrawn by
    a later remove in the same pass never registers and gets no replay.
    """

    def __init__(self, deliver: Deliver, snapshot: Optional[Callable[[], Optional[V]]] = None, name: str = "observers"):
        self._deliver = deliver
        self._snapshot = snapshot or (lambda: None)
        self._name = name
        self._observers: List[O] = []
        self._pending: List[Tuple[str, O]] = []
        self._depth = 0

    # -------- public API --------

    def add(self, observer: O) -> None:
        if self._depth:
            self._pending.append(("add", observer))
            return
        self._apply_add(observer)
        self._flush()

    def remove(self, observer: O) -> None:
        if self._depth:
            # A still-pending add of the same observer is withdrawn (no replay).
            for i in range(len(self._pending) - 1, -1, -1):
                if self._pending[i][1] is observer:
                    if self._pending[i][0] == "add":
                        del self._pending[i]
                    break
            self._pending.append(("remove", observer))
            return
        self._apply_remove(observer)

    def notify_all(self, value: V, deliver: Optional[Deliver] = None) -> None:
        fn = deliver or self._deliver
        self._depth += 1
        try:
            for observer in list(self._observers):
                self._call(fn, observer, value)
        finally:
            self._depth -= 1
        self._flush()

    def __len__(self) -> int:
        return len(self._observers)

    def __contains__(self, observer: object) -> bool:
        return any(o is observer for o in self._observers)

    # -------- internals --------

    def _apply_add(self, observer: O) -> None:
        if observer in self:
            return
        self._observers.append(observer)
        current = self._snapshot()
        if current is None:
            return
        self._depth += 1
        try:
            self._call(self._deliver, observer, current)
        finally:
            self._depth -= 1

    def _apply_remove(self, observer: O) -> None:
        for i, o in enumerate(self._observers):
            if o is observer:
                del self._observers[i]
                return

    def _flush(self) -> None:
        if self._depth:
            return
        # A replayed add may queue further mutations; drain until stable.
        while self._pending:
            op, observer = self._pending.pop(0)
            if op == "add":
                self._apply_add(observer)
            else:
                self._apply_remove(observer)

    def _call(self, fn: Deliver, observer: O, value: V) -> None:
        try:
            fn(observer, value)
        except Exception:
            log.exception("Observer callback failed", extra={"extra": {"registry": self._name,
                                                                      "observer": repr(observer)}})
