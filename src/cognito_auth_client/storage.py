"""
Token storage shared between the auth client and the Cognito user handles.

Keys follow the layout used by the Cognito JavaScript SDK so that a pool's
tokens live under ``CognitoIdentityServiceProvider.<client id>``.
"""

import json
import logging
import os
import threading
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_FILE = Path.home() / '.cognito-auth-client' / 'tokens.json'


class MemoryStorage:
    """In-process storage, ready as soon as it is created"""

    def __init__(self):
        self._items = {}

    def get_item(self, key):
        return self._items.get(key)

    def set_item(self, key, value):
        self._items[key] = value

    def remove_item(self, key):
        self._items.pop(key, None)

    def clear(self):
        self._items.clear()


class FileStorage(MemoryStorage):
    """JSON file backed storage.

    The file is read by ``sync`` rather than in the constructor, so callers
    must wait for the sync callback before trusting ``get_item``. Nothing is
    written to disk until the load has finished; changes made before then are
    merged into the loaded contents and saved once.
    """

    def __init__(self, path=None):
        super().__init__()
        self.path = Path(path) if path else DEFAULT_TOKEN_FILE
        self._lock = threading.Lock()
        self._synced = threading.Event()
        self._removed = set()
        self._cleared = False

    def sync(self, callback):
        """Load the token file on a background thread, then call ``callback(error)``"""
        def load():
            try:
                items = {}
                if self.path.exists():
                    with open(self.path, 'r') as f:
                        items = json.load(f)
                with self._lock:
                    if self._cleared:
                        items = {}
                    for key in self._removed:
                        items.pop(key, None)
                    # Writes made before the load finished win over the file
                    items.update(self._items)
                    self._items = items
                    self._removed.clear()
                    self._synced.set()
                    self._save()
            except (OSError, ValueError) as e:
                logger.warning("Could not load token file %s: %s", self.path, e)
                callback(e)
                return
            logger.debug("Loaded %d cached items from %s", len(items), self.path)
            callback(None)

        thread = threading.Thread(target=load, name='cognito-storage-sync', daemon=True)
        thread.start()

    def set_item(self, key, value):
        with self._lock:
            super().set_item(key, value)
            self._removed.discard(key)
            self._save()

    def remove_item(self, key):
        with self._lock:
            super().remove_item(key)
            if not self._synced.is_set():
                self._removed.add(key)
            self._save()

    def clear(self):
        with self._lock:
            super().clear()
            if not self._synced.is_set():
                self._cleared = True
            self._save()

    def _save(self):
        if not self._synced.is_set():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Refresh tokens live here, so keep the file private to the user
        with open(self.path, 'w', opener=_private_opener) as f:
            json.dump(self._items, f, indent=2)
        os.chmod(self.path, 0o600)


def _private_opener(path, flags):
    return os.open(path, flags, 0o600)
