"""
SLA External Service Integrations
==================================

File-system integration for the YAML SLA policy source:
- watchdog observer that hot-reloads the policy file on change
"""

from pathlib import Path
from typing import Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from msp_itsm.shared.infrastructure.logging import get_logger
from msp_itsm.sla.infrastructure.repositories import YAMLPolicyStore

logger = get_logger(__name__)


class PolicyFileHandler(FileSystemEventHandler):
    """Watchdog event handler for SLA policy file changes."""

    def __init__(self, store: YAMLPolicyStore):
        self.store = store
        super().__init__()

    def _is_policy_file(self, path) -> bool:
        return Path(str(path)).resolve() == self.store.path.resolve()

    def on_modified(self, event):
        """Handle file modification event."""
        if event.is_directory or not self._is_policy_file(event.src_path):
            return
        logger.info("SLA policy file changed", extra={"path": str(event.src_path)})
        self.store.reload()

    def on_created(self, event):
        self.on_modified(event)

    def on_moved(self, event):
        """Editors that save via rename land here."""
        if event.is_directory or not self._is_policy_file(event.dest_path):
            return
        logger.info("SLA policy file replaced", extra={"path": str(event.dest_path)})
        self.store.reload()


class PolicyFileWatcher:
    """
    Hot-reload of the SLA policy file.

    Uses watchdog to monitor the file's directory and reload the store
    without restarting the service.
    """

    def __init__(self, store: YAMLPolicyStore):
        self._store = store
        self._observer: Optional[Observer] = None

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        """
        Start watching the policy file.

        Skips watching if:
        - The file's directory doesn't exist
        - inotify isn't available (some containerized environments)
        """
        directory = self._store.path.resolve().parent
        if not directory.exists():
            logger.info(
                "SLA policy directory doesn't exist, skipping file watch",
                extra={"path": str(directory)}
            )
            return

        try:
            self._observer = Observer()
            self._observer.schedule(
                PolicyFileHandler(self._store),
                str(directory),
                recursive=False
            )
            self._observer.start()
            logger.info(
                "Started watching SLA policy file",
                extra={"path": str(self._store.path)}
            )
        except OSError as e:
            logger.warning(
                "File watching not available, SLA policies are static",
                extra={"error": str(e)}
            )
            self._observer = None

    def stop(self) -> None:
        """Stop watching (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
