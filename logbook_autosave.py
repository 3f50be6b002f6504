"""
Debounced autosave of the backup document.

Each write to the log calls touch(). When autosave is switched on, touch()
(re)arms a single timer; the export is written once the writes have been
quiet for `delay` seconds. This only coalesces bursts of writes, it does not
protect anything from a hard kill.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Optional, Union

from logbook_backup import export_document, write_backup
from logbook_store import CollectionStore

logger = logging.getLogger("fishlog.autosave")

DEFAULT_FILENAME = "fishing-log-autosave.json"


class Autosaver:
    def __init__(
        self,
        store: CollectionStore,
        target_dir: Union[str, Path],
        delay: float = 1.0,
        filename: str = DEFAULT_FILENAME,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self.store = store
        self.target = Path(target_dir) / filename
        self.delay = delay
        self._timer_factory = timer_factory
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self.flush_count = 0

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def touch(self) -> None:
        """Note that something changed; flush after the idle delay."""
        if not self.store.autosave_enabled():
            return
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = self._timer_factory(self.delay, self._fire)
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        try:
            self.flush()
        except OSError:
            logger.exception("Autosave to %s failed", self.target)

    def flush(self) -> Path:
        path = write_backup(self.target, export_document(self.store))
        self.flush_count += 1
        logger.info("Autosaved to %s", path)
        return path

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
