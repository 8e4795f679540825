"""
State Store

Durable key-value storage for analysis sessions. Each session holds:

    {
        "steps": {"<index>": {"prompt_text": ..., "response_text": ...}},
        "complete": false,
        "snapshots": {"<index>": "<raw data>"}
    }

Everything is re-read from storage on each call, so state survives across
independent request/response cycles and processes.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union
import copy
import hashlib
import json
import logging
import os
import re
import tempfile
import threading

from .models import ConversationHistory, OperationReport, StepRecord

logger = logging.getLogger(__name__)


def _empty_state() -> Dict[str, Any]:
    return {"steps": {}, "complete": False, "snapshots": {}}


class StateStore(ABC):
    """
    Base class for session state stores.

    Subclasses provide raw read/write of the per-session document; the
    record-level operations are shared.
    """

    def __init__(self):
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @abstractmethod
    def _read(self, session_id: str) -> Dict[str, Any]:
        """Return the session document, or an empty one."""

    @abstractmethod
    def _write(self, session_id: str, state: Dict[str, Any]) -> None:
        """Persist the session document. May raise ``OSError``."""

    @abstractmethod
    def _delete(self, session_id: str) -> None:
        """Remove the session document if present."""

    @abstractmethod
    def list_sessions(self) -> List[str]:
        """Session ids with stored state."""

    def lock_key(self, session_id: str) -> str:
        return session_id

    @contextmanager
    def lock(self, session_id: str) -> Iterator[threading.RLock]:
        """
        Hold the session's lock.

        Serializes read-modify-write cycles for one session. Locks are
        reentrant and keyed by :meth:`lock_key`, so ids sharing storage
        share a lock.
        """
        key = self.lock_key(session_id)
        with self._locks_guard:
            session_lock = self._locks.setdefault(key, threading.RLock())
        with session_lock:
            yield session_lock

    def _load(self, session_id: str) -> Dict[str, Any]:
        state = _empty_state()
        state.update(self._read(session_id) or {})
        state["steps"] = dict(state.get("steps") or {})
        state["snapshots"] = dict(state.get("snapshots") or {})
        return state

    def load_records(self, session_id: str) -> Dict[int, StepRecord]:
        """All stored records for a session, keyed by step index."""
        records: Dict[int, StepRecord] = {}
        for key, payload in self._load(session_id)["steps"].items():
            try:
                index = int(key)
            except (TypeError, ValueError):
                logger.warning(f"Ignoring malformed step key {key!r} in session '{session_id}'")
                continue
            records[index] = StepRecord.from_dict(index, payload or {})
        return records

    def load_record(self, session_id: str, step_index: int) -> Optional[StepRecord]:
        return self.load_records(session_id).get(step_index)

    def load_history(self, session_id: str, current_step: int) -> ConversationHistory:
        """Records for ``[1, current_step)``, freshly read from storage."""
        return ConversationHistory.from_records(self.load_records(session_id), current_step)

    def save_record(self, session_id: str, record: StepRecord) -> OperationReport:
        """
        Store a record, overwriting any previous record at its index.

        Returns
        -------
        OperationReport
            ``success`` is False when the write failed; nothing is raised.
        """
        report = OperationReport(
            success=True,
            operation="save_record",
            metadata={"session_id": session_id, "step_index": record.step_index},
        )
        with self.lock(session_id):
            state = self._load(session_id)
            key = str(record.step_index)
            if key in state["steps"]:
                report.warnings.append(f"Overwrote existing record for step {record.step_index}")
            state["steps"][key] = record.to_dict()
            try:
                self._write(session_id, state)
            except OSError as e:
                logger.exception(f"Failed to save step {record.step_index} for session '{session_id}'")
                report.success = False
                report.errors.append(str(e))
        return report

    def is_complete(self, session_id: str) -> bool:
        return bool(self._load(session_id).get("complete"))

    def mark_complete(self, session_id: str, complete: bool = True) -> OperationReport:
        report = OperationReport(success=True, operation="mark_complete", metadata={"complete": complete})
        with self.lock(session_id):
            state = self._load(session_id)
            state["complete"] = complete
            try:
                self._write(session_id, state)
            except OSError as e:
                logger.exception(f"Failed to update completion for session '{session_id}'")
                report.success = False
                report.errors.append(str(e))
        return report

    def save_snapshot(self, session_id: str, step_index: int, data: str) -> OperationReport:
        """Keep the raw payload collected for a step."""
        report = OperationReport(success=True, operation="save_snapshot", metadata={"step_index": step_index})
        with self.lock(session_id):
            state = self._load(session_id)
            state["snapshots"][str(step_index)] = data
            try:
                self._write(session_id, state)
            except OSError as e:
                logger.exception(f"Failed to save snapshot {step_index} for session '{session_id}'")
                report.success = False
                report.errors.append(str(e))
        return report

    def load_snapshot(self, session_id: str, step_index: int) -> Optional[str]:
        return self._load(session_id)["snapshots"].get(str(step_index))

    def clear(self, session_id: str) -> OperationReport:
        """Forget all records, snapshots and the completion flag."""
        report = OperationReport(success=True, operation="clear", metadata={"session_id": session_id})
        with self.lock(session_id):
            try:
                self._delete(session_id)
            except OSError as e:
                logger.exception(f"Failed to clear session '{session_id}'")
                report.success = False
                report.errors.append(str(e))
        return report


class InMemoryStateStore(StateStore):
    """Process-local store, used for tests and one-shot runs."""

    def __init__(self):
        super().__init__()
        self._sessions: Dict[str, Dict[str, Any]] = {}

    def _read(self, session_id: str) -> Dict[str, Any]:
        return copy.deepcopy(self._sessions.get(session_id, _empty_state()))

    def _write(self, session_id: str, state: Dict[str, Any]) -> None:
        self._sessions[session_id] = copy.deepcopy(state)

    def _delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def list_sessions(self) -> List[str]:
        return sorted(self._sessions)


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def session_file_name(session_id: str) -> str:
    """
    Map a session id to a safe file name.

    Ids that are already safe map to ``<id>.json``. Any other id gets a
    short digest of the raw id appended, so ids that sanitize to the same
    text (``a/b`` and ``a_b``) never share a file.
    """
    safe = _UNSAFE_CHARS.sub("_", session_id).strip("._")
    if safe and safe == session_id:
        return f"{safe}.json"
    digest = hashlib.md5(session_id.encode("utf-8")).hexdigest()[:8]
    return f"{safe or 'default'}-{digest}.json"


class JsonFileStateStore(StateStore):
    """
    One JSON document per session under ``root_dir``.

    Writes go through a temporary file in the same directory followed by
    ``os.replace`` so a crash never leaves a half-written document.

    Parameters
    ----------
    root_dir : str or Path
        Directory holding the session files. Created on first write.
    """

    def __init__(self, root_dir: Union[str, Path]):
        super().__init__()
        self.root_dir = Path(root_dir).expanduser()

    def path_for(self, session_id: str) -> Path:
        return self.root_dir / session_file_name(session_id)

    def lock_key(self, session_id: str) -> str:
        return session_file_name(session_id)

    def _read(self, session_id: str) -> Dict[str, Any]:
        path = self.path_for(session_id)
        if not path.exists():
            return _empty_state()
        try:
            with open(path, "r", encoding="utf-8") as f:
                state = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read session file {path}, starting empty: {e}")
            return _empty_state()
        if not isinstance(state, dict):
            logger.warning(f"Session file {path} does not hold an object, starting empty")
            return _empty_state()
        return state

    def _write(self, session_id: str, state: Dict[str, Any]) -> None:
        self.root_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(session_id)
        fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", suffix=".json", dir=str(self.root_dir))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2)
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def _delete(self, session_id: str) -> None:
        path = self.path_for(session_id)
        if path.exists():
            path.unlink()

    def list_sessions(self) -> List[str]:
        if not self.root_dir.exists():
            return []
        return sorted(p.stem for p in self.root_dir.glob("*.json") if not p.name.startswith(".tmp-"))
