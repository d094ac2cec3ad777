"""File-backed document store with per-key holds and atomic multi-document commits."""

import json
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import structlog
from pydantic import BaseModel, Field

from chat2portfolio.config import Settings
from chat2portfolio.errors import DocumentNotFound, StoreConflictError, StoreIOError
from chat2portfolio.schemas.documents import PLACEHOLDER_CODE, SITE_FILENAMES, default_profile

logger = structlog.get_logger(__name__)

HISTORY = "history"
PROFILE = "profile"
CODE = "code"
KEYS = (HISTORY, PROFILE, CODE)


class Snapshot(BaseModel):
    """Documents and their versions, read together under the commit lock."""

    documents: dict[str, Any] = Field(default_factory=dict)
    versions: dict[str, int] = Field(default_factory=dict)

    def __getitem__(self, key: str) -> Any:
        return self.documents[key]


class DocumentStore:
    """
    Persistence for the history, profile and code documents plus image blobs.

    Layout:
    - data_dir/chat-history.json, data_dir/user-profile.json, data_dir/uploads/
    - site_dir/index.html, site_dir/style.css, site_dir/script.js (the code document)

    Two kinds of locking:
    - the commit lock guards every disk read and write, so readers only ever
      see fully applied commits and never wait on a long operation
    - per-key holds give one writer at a time the read-modify-write cycle of a
      key; controllers take them with ``hold()``

    Each key has a version that increases with every commit. ``put_batch``
    refuses to write when ``expected_versions`` no longer match.
    """

    def __init__(self, data_dir: Path, site_dir: Path):
        self.data_dir = Path(data_dir)
        self.site_dir = Path(site_dir)
        self.uploads_dir = self.data_dir / "uploads"
        self.journal_path = self.data_dir / ".batch-journal.json"

        self._commit_lock = threading.RLock()
        self._holds = {key: threading.Lock() for key in KEYS}
        self._versions = {key: 0 for key in KEYS}

    @classmethod
    def from_settings(cls, settings: Settings) -> "DocumentStore":
        return cls(data_dir=settings.data_dir, site_dir=settings.site_dir)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init_defaults(self) -> None:
        """Load-or-default: replay a pending journal, then create missing documents."""
        defaults: dict[str, Callable[[], Any]] = {
            HISTORY: list,
            PROFILE: default_profile,
            CODE: PLACEHOLDER_CODE.model_dump,
        }
        with self._commit_lock:
            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                self.site_dir.mkdir(parents=True, exist_ok=True)
                self.uploads_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StoreIOError(f"Failed to create store directories: {e}") from e

            self.recover()
            for key, factory in defaults.items():
                self.ensure(key, factory)

        logger.info("Store ready", data_dir=str(self.data_dir), site_dir=str(self.site_dir))

    def ensure(self, key: str, factory: Callable[[], Any]) -> Any:
        """Return the committed document, committing ``factory()`` first if absent."""
        with self._commit_lock:
            try:
                return self._decode(key)
            except DocumentNotFound:
                document = factory()
                self.put_batch({key: document})
                logger.info("Created default document", key=key)
                return document

    def recover(self) -> bool:
        """
        Roll a leftover batch journal forward.

        The journal is written only after every file of a batch is staged, so
        its presence means the batch was committed and must be fully applied.

        Returns:
            True if a journal was replayed.
        """
        with self._commit_lock:
            if not self.journal_path.exists():
                return False
            try:
                journal = json.loads(self.journal_path.read_text(encoding="utf-8"))
                for raw_path, text in journal["files"].items():
                    self._atomic_write(Path(raw_path), text)
                self.journal_path.unlink()
            except (OSError, ValueError, KeyError) as e:
                raise StoreIOError(f"Failed to replay batch journal: {e}") from e

            # The journal does not name its keys: treat every key as changed
            for key in KEYS:
                self._versions[key] += 1

            logger.warning("Replayed pending batch journal", files=len(journal["files"]))
            return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any:
        """Last committed value of ``key``."""
        with self._commit_lock:
            return self._decode(key)

    def version(self, key: str) -> int:
        with self._commit_lock:
            return self._versions[self._check_key(key)]

    def snapshot(self, *keys: str) -> Snapshot:
        """Read several documents at one instant."""
        with self._commit_lock:
            return Snapshot(
                documents={key: self._decode(key) for key in keys},
                versions={key: self._versions[key] for key in keys},
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """
        Exclusive hold on ``keys`` for a read-modify-write cycle.

        Keys are acquired in sorted order so two operations holding
        overlapping key sets cannot deadlock.
        """
        ordered = sorted({self._check_key(key) for key in keys})
        acquired: list[str] = []
        try:
            for key in ordered:
                self._holds[key].acquire()
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._holds[key].release()

    def put(self, key: str, document: Any, expected_version: Optional[int] = None) -> int:
        expected = None if expected_version is None else {key: expected_version}
        return self.put_batch({key: document}, expected_versions=expected)[key]

    def put_batch(
        self,
        documents: dict[str, Any],
        expected_versions: Optional[dict[str, int]] = None,
    ) -> dict[str, int]:
        """
        Commit several documents: all keys succeed or none do.

        Args:
            documents: key -> JSON-compatible document
            expected_versions: key -> version the caller read; any mismatch
                raises StoreConflictError before anything is written

        Returns:
            key -> new version
        """
        if not documents:
            return {}

        with self._commit_lock:
            self.recover()
            for key, expected in (expected_versions or {}).items():
                current = self._versions[self._check_key(key)]
                if current != expected:
                    logger.warning("Commit refused, document changed", key=key, expected=expected, current=current)
                    raise StoreConflictError(
                        f"Document '{key}' changed since it was read (version {expected} -> {current})"
                    )

            writes: dict[Path, str] = {}
            for key, document in documents.items():
                writes.update(self._encode(self._check_key(key), document))

            self._apply(writes)

            for key in documents:
                self._versions[key] += 1
            committed = {key: self._versions[key] for key in documents}

        logger.debug("Committed batch", versions=committed, files=len(writes))
        return committed

    # ------------------------------------------------------------------
    # Blobs
    # ------------------------------------------------------------------

    def blob_path(self, filename: str) -> Path:
        if not filename or Path(filename).name != filename or filename.startswith("."):
            raise StoreIOError(f"Invalid blob name: {filename!r}")
        return self.uploads_dir / filename

    def save_blob(self, filename: str, data: bytes) -> Path:
        path = self.blob_path(filename)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_name(path.name + ".tmp")
            tmp.write_bytes(data)
            os.replace(tmp, path)
        except OSError as e:
            raise StoreIOError(f"Failed to save blob {filename}: {e}") from e
        logger.debug("Saved blob", filename=filename, size=len(data))
        return path

    def delete_blob(self, filename: str) -> None:
        try:
            self.blob_path(filename).unlink(missing_ok=True)
        except OSError as e:
            raise StoreIOError(f"Failed to delete blob {filename}: {e}") from e

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_key(self, key: str) -> str:
        if key not in KEYS:
            raise KeyError(f"Unknown store key: {key}")
        return key

    def _paths(self, key: str) -> dict[str, Path]:
        if key == HISTORY:
            return {HISTORY: self.data_dir / "chat-history.json"}
        if key == PROFILE:
            return {PROFILE: self.data_dir / "user-profile.json"}
        return {part: self.site_dir / name for part, name in SITE_FILENAMES.items()}

    def _encode(self, key: str, document: Any) -> dict[Path, str]:
        paths = self._paths(key)
        if key == CODE:
            missing = [part for part in paths if not isinstance(document.get(part), str)]
            if missing:
                raise StoreIOError(f"Code document missing parts: {missing}")
            return {path: document[part] for part, path in paths.items()}
        try:
            text = json.dumps(document, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StoreIOError(f"Document '{key}' is not JSON-serializable: {e}") from e
        return {paths[key]: text}

    def _decode(self, key: str) -> Any:
        paths = self._paths(self._check_key(key))
        # A batch left half-swapped is finished before anything is served
        self.recover()
        try:
            if key == CODE:
                if not all(path.exists() for path in paths.values()):
                    raise DocumentNotFound(f"Document '{key}' not found")
                return {part: path.read_text(encoding="utf-8") for part, path in paths.items()}

            path = paths[key]
            if not path.exists():
                raise DocumentNotFound(f"Document '{key}' not found")
            return json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise StoreIOError(f"Failed to read '{key}': {e}") from e
        except json.JSONDecodeError as e:
            raise StoreIOError(f"Document '{key}' is corrupt: {e}") from e

    def _atomic_write(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        try:
            tmp.write_text(text, encoding="utf-8")
            os.replace(tmp, path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise

    def _apply(self, writes: dict[Path, str]) -> None:
        """
        Stage, journal, then swap every file of a batch.

        A failure while staging leaves the old files untouched. A failure
        while swapping restores the files already swapped and reports the
        batch as failed. If the restore fails too, the journal finishes the
        batch instead and the commit succeeds. If even that fails the batch
        stays journaled, StoreIOError is raised, and every later read or
        write replays the journal first, so no reader sees a mixed set of
        files.
        """
        try:
            previous = {path: path.read_text(encoding="utf-8") if path.exists() else None for path in writes}
        except OSError as e:
            raise StoreIOError(f"Failed to read current files: {e}") from e

        staged: dict[Path, Path] = {}
        try:
            for path, text in writes.items():
                path.parent.mkdir(parents=True, exist_ok=True)
                tmp = path.with_name(path.name + ".tmp")
                tmp.write_text(text, encoding="utf-8")
                staged[path] = tmp
            self._atomic_write(
                self.journal_path,
                json.dumps({"files": {str(path.resolve()): text for path, text in writes.items()}}),
            )
        except OSError as e:
            self._discard(staged.values())
            raise StoreIOError(f"Failed to stage batch: {e}") from e

        swapped: list[Path] = []
        try:
            for path, tmp in staged.items():
                os.replace(tmp, path)
                swapped.append(path)
        except OSError as e:
            self._discard(staged.values())
            if self._restore(previous, swapped):
                self.journal_path.unlink(missing_ok=True)
                raise StoreIOError(f"Failed to apply batch: {e}") from e

            # Neither side is on disk in full: finish the batch from the journal
            try:
                self.recover()
            except StoreIOError as recover_error:
                raise StoreIOError(
                    f"Failed to apply batch: {e}; it stays journaled and is applied before the next read"
                ) from recover_error
            logger.warning("Batch applied from journal after failed swap and rollback", error=str(e))
            return

        self.journal_path.unlink(missing_ok=True)

    def _restore(self, previous: dict[Path, Optional[str]], swapped: list[Path]) -> bool:
        try:
            for path in swapped:
                if previous[path] is None:
                    path.unlink(missing_ok=True)
                else:
                    self._atomic_write(path, previous[path])
        except OSError as e:
            logger.error("Rollback failed, journal kept for recovery", error=str(e))
            return False
        logger.warning("Rolled back partially applied batch", files=len(swapped))
        return True

    def _discard(self, paths) -> None:
        for tmp in paths:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                logger.warning("Failed to remove staged file", path=str(tmp))
