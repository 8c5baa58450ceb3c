"""
Key-value storage backends.

Values are strings (serialized JSON), keyed by short names such as
"reports". Every backend shares one in-process change channel per backing
location, so two storage objects over the same directory or mapping see
each other's writes as notifications.
"""

from __future__ import annotations

import inspect
import os
import re
import threading
import weakref
from pathlib import Path
from typing import Callable, Dict, List, MutableMapping, Optional, Tuple

Listener = Callable[[str], None]
# (dereference, key filter); dereference returns None once the listener is gone
Entry = Tuple[Callable[[], Optional[Listener]], Optional[str]]

_file_channels: Dict[str, List[Entry]] = {}
_lock = threading.Lock()

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")
_CHANNEL_KEY = "__listeners__"


def _reference(listener: Listener):
    if inspect.ismethod(listener):
        return weakref.WeakMethod(listener)
    return lambda: listener


class KeyValueStorage:
    """Base class: subclasses implement _read/_write/_delete and _channel."""

    def get_item(self, key: str) -> Optional[str]:
        return self._read(key)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError("storage values must be strings")
        self._write(key, value)
        self._notify(key)

    def remove_item(self, key: str) -> None:
        self._delete(key)
        self._notify(key)

    def subscribe(self, listener: Listener, key: Optional[str] = None) -> Callable[[], None]:
        """Register a change listener; returns a callable that removes it.

        Bound methods are held through a weak reference, so an object that
        is garbage collected drops out of the channel without unsubscribing.
        Plain functions are held until ``unsubscribe`` is called. With
        ``key`` set, only changes to that key are reported.
        """
        entry = (_reference(listener), key)
        with _lock:
            self._channel().append(entry)

        def unsubscribe():
            with _lock:
                channel = self._channel(create=False)
                if entry in channel:
                    channel.remove(entry)

        return unsubscribe

    def listeners(self) -> List[Listener]:
        """Live listeners on this storage's channel."""
        with _lock:
            return [listener for listener, _ in self._live()]

    def _live(self):
        """Drop dead entries; caller holds _lock."""
        channel = self._channel(create=False)
        live = []
        for entry in list(channel):
            listener = entry[0]()
            if listener is None:
                channel.remove(entry)
            else:
                live.append((listener, entry[1]))
        return live

    def _notify(self, key: str) -> None:
        with _lock:
            registered = [listener for listener, wanted in self._live() if wanted in (None, key)]
        for listener in registered:
            try:
                listener(key)
            except Exception as e:
                print(f"Storage listener failed for {key!r}: {e}")

    def _channel(self, create: bool = True) -> List[Entry]:
        raise NotImplementedError

    def _read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _write(self, key: str, value: str) -> None:
        raise NotImplementedError

    def _delete(self, key: str) -> None:
        raise NotImplementedError


class SessionStorage(KeyValueStorage):
    """Storage over any mutable mapping, e.g. ``st.session_state``.

    The listener list lives inside the mapping, so it goes away with it.
    """

    def __init__(self, mapping: MutableMapping, prefix: str = "kv:"):
        self.mapping = mapping
        self.prefix = prefix

    def _channel(self, create=True):
        name = self.prefix + _CHANNEL_KEY
        if name not in self.mapping:
            if not create:
                return []
            self.mapping[name] = []
        return self.mapping[name]

    def _read(self, key):
        value = self.mapping.get(self.prefix + key)
        return value if isinstance(value, str) else None

    def _write(self, key, value):
        self.mapping[self.prefix + key] = value

    def _delete(self, key):
        if self.prefix + key in self.mapping:
            del self.mapping[self.prefix + key]


class MemoryStorage(SessionStorage):
    """Process-local storage backed by a plain dict."""

    def __init__(self):
        super().__init__({}, prefix="")

    def keys(self) -> List[str]:
        return [k for k in self.mapping if k != _CHANNEL_KEY]


class FileStorage(KeyValueStorage):
    """One ``<key>.json`` file per key under a data directory.

    Each write replaces the whole file; there is no locking between writers.
    """

    def __init__(self, directory: str | os.PathLike):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._channel_name = str(self.directory.resolve())

    def _channel(self, create=True):
        return _file_channels.setdefault(self._channel_name, [])

    def path_for(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def _read(self, key):
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _write(self, key, value):
        path = self.path_for(key)
        tmp = path.with_suffix(f".{threading.get_ident()}.tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)

    def _delete(self, key):
        path = self.path_for(key)
        if path.exists():
            path.unlink()
