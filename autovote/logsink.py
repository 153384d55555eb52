from __future__ import annotations

import json
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from rich.console import Console

Observer = Callable[[str], None]


class LogBroadcaster:
    """
    Process-wide fan-out of timestamped log lines.

    Why this exists:
    - Several runs may log at the same time; each line must arrive whole.
    - Observers come and go (console, file, ...). One that raises is dropped
      and never breaks the run that emitted the line.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock
        self._lock = threading.RLock()
        self._observers: List[Observer] = []

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Add an observer. Returns a function that unsubscribes it."""
        with self._lock:
            self._observers.append(observer)
        return lambda: self.unsubscribe(observer)

    def unsubscribe(self, observer: Observer) -> None:
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    def emit(self, message: str) -> None:
        formatted = f"[{self._clock().strftime('%H:%M:%S')}] {message}"
        # Held for the whole fan-out so every observer sees the same order.
        with self._lock:
            broken = []
            for observer in list(self._observers):
                try:
                    observer(formatted)
                except Exception:
                    broken.append(observer)
            for observer in broken:
                if observer in self._observers:
                    self._observers.remove(observer)

    def logger_for(self, tag: Optional[str] = None) -> Callable[[str], None]:
        """A run logger; lines are prefixed with `[tag]` when given."""
        if not tag:
            return self.emit
        return lambda message: self.emit(f"[{tag}] {message}")


class ConsoleObserver:
    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def __call__(self, line: str) -> None:
        # Log text comes from web pages; never interpret it as rich markup.
        self.console.print(line, markup=False, highlight=False)


class JsonlObserver:
    """Append each line to a JSON-lines file as {"timestamp", "message"}."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def __call__(self, line: str) -> None:
        record = {"timestamp": datetime.now().isoformat(), "message": line}
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")


broadcaster = LogBroadcaster()
