#!/usr/bin/env python3

"""Locate time-log blocks in Markdown documents and write them back in place."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
import os
import re
import tempfile
import threading
from typing import Any, Dict, Iterator, List, Optional, Protocol, Tuple

from timelog_common import DEFAULT_BLOCK_LANGUAGE, _debug, _warn
from timelog_model import LogDocument, decode_document, encode_document

_FENCE_OPEN = re.compile(r"^ {0,3}(?P<fence>`{3,}|~{3,})\s*(?P<info>[^\s`]*)")

BlockKey = Tuple[str, int]


class PersistenceError(Exception):
    """Base class for failures while saving a block back to its document."""


class DocumentNotFoundError(PersistenceError):
    pass


class DocumentReadError(PersistenceError):
    """The document exists but could not be read as UTF-8 text."""


class BlockPositionUnavailableError(PersistenceError):
    pass


class WriteFailedError(PersistenceError):
    pass


@dataclass(frozen=True)
class BlockPosition:
    """Line indices of a block's opening and closing fence lines (inclusive)."""

    line_start: int
    line_end: int


class DocumentStore(Protocol):
    def read(self, path: str) -> str: ...

    def write(self, path: str, text: str) -> bool: ...

    def locate(self, path: str, handle: int) -> Optional[BlockPosition]: ...


def find_blocks(text: str, language: str = DEFAULT_BLOCK_LANGUAGE) -> List[BlockPosition]:
    """Return the positions of every closed fenced block tagged ``language``.

    An unclosed fence ends the scan, since everything after it belongs to
    that fence.
    """

    lines = text.split("\n")
    positions: List[BlockPosition] = []
    index = 0
    while index < len(lines):
        match = _FENCE_OPEN.match(lines[index].rstrip("\r"))
        if not match:
            index += 1
            continue

        fence = match.group("fence")
        closing = re.compile(rf"^ {{0,3}}{re.escape(fence[0])}{{{len(fence)},}}\s*$")
        end = index + 1
        while end < len(lines) and not closing.match(lines[end].rstrip("\r")):
            end += 1
        if end >= len(lines):
            break

        if match.group("info") == language:
            positions.append(BlockPosition(line_start=index, line_end=end))
        index = end + 1
    return positions


def block_source(text: str, position: BlockPosition) -> str:
    lines = text.split("\n")
    inner = lines[position.line_start + 1 : position.line_end]
    return "\n".join(line.rstrip("\r") for line in inner)


def update_block(
    document_text: str, block_start_line: int, block_end_line: int, new_body: str
) -> str:
    """Replace the lines between two fence lines with ``new_body``.

    Lines up to and including ``block_start_line`` and from ``block_end_line``
    on are kept byte for byte. The trimmed body is spliced in as one unit and
    uses CRLF when the opening fence line does.
    """

    lines = document_text.split("\n")
    if not 0 <= block_start_line < block_end_line < len(lines):
        raise BlockPositionUnavailableError(
            f"Block lines {block_start_line}-{block_end_line} are outside "
            f"a document of {len(lines)} lines"
        )

    body = new_body.strip()
    if lines[block_start_line].endswith("\r"):
        body = body.replace("\r\n", "\n").replace("\n", "\r\n") + "\r"

    new_lines = lines[: block_start_line + 1] + [body] + lines[block_end_line:]
    return "\n".join(new_lines)


def load_block(store: DocumentStore, path: str, handle: int) -> LogDocument:
    """Decode the block at ``handle``; decode failures surface as LogDecodeError."""

    text = store.read(path)
    position = store.locate(path, handle)
    if position is None:
        raise BlockPositionUnavailableError(f"No time-log block {handle} in {path}")
    return decode_document(block_source(text, position))


class FileDocumentStore:
    """Document store backed by Markdown files on the local filesystem."""

    def __init__(self, language: str = DEFAULT_BLOCK_LANGUAGE) -> None:
        self.language = language

    def read(self, path: str) -> str:
        try:
            with open(path, encoding="utf-8", newline="") as document:
                return document.read()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            raise DocumentNotFoundError(f"Source file not found: {path}") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise DocumentReadError(f"Could not read {path}: {exc}") from exc

    def write(self, path: str, text: str) -> bool:
        directory = os.path.dirname(os.path.abspath(path))
        temp_path: Optional[str] = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                newline="",
                dir=directory,
                prefix=".timelog-",
                delete=False,
            ) as temp_file:
                temp_path = temp_file.name
                temp_file.write(text)
            if os.path.exists(path):
                os.chmod(temp_path, os.stat(path).st_mode & 0o7777)
            os.replace(temp_path, path)
        except OSError as exc:
            if temp_path and os.path.exists(temp_path):
                os.unlink(temp_path)
            raise WriteFailedError(f"Could not write {path}: {exc}") from exc
        return True

    def locate(self, path: str, handle: int) -> Optional[BlockPosition]:
        positions = find_blocks(self.read(path), self.language)
        if 0 <= handle < len(positions):
            return positions[handle]
        return None


class BlockUpdater:
    """Persist LogDocuments into their blocks, one save per block at a time."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self._locks: Dict[BlockKey, threading.Lock] = {}
        self._lock_users: Dict[BlockKey, int] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _block_lock(self, key: BlockKey) -> Iterator[None]:
        # A lock lives only while some save of its block holds or waits on it.
        with self._locks_guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._locks_guard:
                self._lock_users[key] -= 1
                if not self._lock_users[key]:
                    del self._lock_users[key]
                    del self._locks[key]

    def active_locks(self) -> int:
        with self._locks_guard:
            return len(self._locks)

    def save(self, path: str, handle: int, document: LogDocument) -> str:
        """Read, splice and write back the block; returns the written text.

        The new text is built in full before the store is asked to write, so
        a failure leaves the document as it was read.
        """

        with self._block_lock((path, handle)):
            try:
                text = self.store.read(path)
                position = self.store.locate(path, handle)
                if position is None:
                    raise BlockPositionUnavailableError(
                        f"Could not get section info for block {handle} in {path}"
                    )
                new_text = update_block(
                    text, position.line_start, position.line_end, encode_document(document)
                )
                if not self.store.write(path, new_text):
                    raise WriteFailedError(f"Store rejected the write to {path}")
            except PersistenceError as exc:
                _warn(f"Error saving changes: {exc}")
                raise

        _debug(f"[timelog] block {handle} updated in {path}")
        return new_text


class BlockRegistry:
    """Live views keyed by block identity, with explicit acquire and release."""

    def __init__(self) -> None:
        self._views: Dict[BlockKey, Any] = {}

    def acquire(self, key: BlockKey, view: Any) -> Optional[Any]:
        """Register ``view`` for ``key``; returns the view it replaces, if any."""

        previous = self._views.pop(key, None)
        self._views[key] = view
        return previous

    def release(self, key: BlockKey) -> Optional[Any]:
        return self._views.pop(key, None)

    def release_all(self) -> List[Any]:
        views = list(self._views.values())
        self._views.clear()
        return views

    def get(self, key: BlockKey) -> Optional[Any]:
        return self._views.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._views

    def __len__(self) -> int:
        return len(self._views)
