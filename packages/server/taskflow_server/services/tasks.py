"""
Task store: the single owner of task records and their Kanban ordering.

Handles:
- Task create / update / delete with per-column dense ordering
- Moves between and within columns (stable insertion, clamped index)
- Optional optimistic concurrency via per-task version counters
- Change notification for the snapshot adapter

Every mutation is staged on copies, checked against the column invariants,
then committed in one step while holding the store lock. Callers only ever
see settled states, and records handed out are deep copies.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable, Iterable, Iterator, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

import structlog
from pydantic import ValidationError as SchemaValidationError

from taskflow_server.core.errors import (
    ConflictError,
    InvariantViolationError,
    NotFoundError,
    ValidationError,
)
from taskflow_shared.schemas.common import KANBAN_COLUMNS, TaskStatus
from taskflow_shared.schemas.tasks import TaskCreate, TaskRead, TaskUpdate

log = structlog.get_logger()

Listener = Callable[[list[TaskRead]], None]
Columns = dict[TaskStatus, list[str]]

# Fields an update may clear by sending null.
NULLABLE_FIELDS = {"due_date", "category", "assigned_to"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _coerce_status(value: Union[TaskStatus, str]) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown status: {value!r}") from None


def _check_title(title: Optional[str]) -> None:
    if title is None or not title.strip():
        raise ValidationError("Title is required")


def _parse(model: type, data: Any):
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except SchemaValidationError as exc:
        raise ValidationError(str(exc)) from None


class TaskStore:
    """In-memory task collection with per-status dense ordering."""

    def __init__(
        self,
        tasks: Optional[Iterable[TaskRead]] = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ):
        self._lock = threading.RLock()
        self._records: dict[str, TaskRead] = {}
        self._columns: Columns = {status: [] for status in KANBAN_COLUMNS}
        self._issued_ids: set[str] = set()
        self._listeners: list[Listener] = []
        self._clock = clock
        self._id_factory = id_factory
        if tasks is not None:
            self.load(tasks)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._records

    def find(self, task_id: str) -> Optional[TaskRead]:
        with self._lock:
            record = self._records.get(task_id)
            return record.model_copy(deep=True) if record else None

    def get_by_id(self, task_id: str) -> TaskRead:
        task = self.find(task_id)
        if task is None:
            raise NotFoundError(task_id)
        return task

    def get_by_status(self, status: Union[TaskStatus, str]) -> Iterator[TaskRead]:
        """Tasks in one column by ascending order.

        The column is captured when this is called; later mutations do not
        affect an iterator already handed out. Call again for a fresh pass.
        """
        status = _coerce_status(status)
        with self._lock:
            column = list(self._columns[status])
            records = {task_id: self._records[task_id] for task_id in column}
        return (records[task_id].model_copy(deep=True) for task_id in column)

    def all(self) -> list[TaskRead]:
        """Every task, columns in board order, each column by order."""
        with self._lock:
            return [
                self._records[task_id].model_copy(deep=True)
                for status in KANBAN_COLUMNS
                for task_id in self._columns[status]
            ]

    def count(self, status: Union[TaskStatus, str]) -> int:
        with self._lock:
            return len(self._columns[_coerce_status(status)])

    # ------------------------------------------------------------------
    # Loading and change notification
    # ------------------------------------------------------------------

    def load(self, tasks: Iterable[TaskRead]) -> None:
        """Replace the store contents with an initial collection.

        Columns are normalized to dense order: existing order ascending, ties
        by created_at, then by position in the input.
        """
        incoming = [_parse(TaskRead, task) for task in tasks]
        seen: set[str] = set()
        for task in incoming:
            if task.id in seen:
                raise ValidationError(f"Duplicate task id: {task.id}")
            seen.add(task.id)

        columns: dict[TaskStatus, list[tuple[int, datetime, int, TaskRead]]] = {
            status: [] for status in KANBAN_COLUMNS
        }
        for position, task in enumerate(incoming):
            columns[task.status].append((task.order, task.created_at, position, task))

        records: dict[str, TaskRead] = {}
        new_columns: Columns = {}
        for status, entries in columns.items():
            entries.sort(key=lambda entry: entry[:3])
            new_columns[status] = []
            for index, (_, _, _, task) in enumerate(entries):
                if task.updated_at < task.created_at:
                    task = task.model_copy(update={"updated_at": task.created_at})
                records[task.id] = task.model_copy(update={"order": index}, deep=True)
                new_columns[status].append(task.id)

        with self._lock:
            self._records = records
            self._columns = new_columns
            self._issued_ids |= seen
        log.info("task_store.loaded", count=len(records))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with the full task list after every mutation.

        Listener errors are logged and do not fail the mutation that
        triggered them.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.all()
        for listener in list(self._listeners):
            # The mutation is already committed; a listener cannot undo it.
            try:
                listener(snapshot)
            except Exception:
                log.exception("task_store.listener_failed", listener=getattr(listener, "__qualname__", repr(listener)))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, data: Union[TaskCreate, Mapping[str, Any]]) -> TaskRead:
        task_in = _parse(TaskCreate, data)
        _check_title(task_in.title)

        with self._lock:
            task_id = self._id_factory()
            if task_id in self._issued_ids:
                raise InvariantViolationError(f"Id factory reissued id {task_id}")

            now = self._clock()
            column = self._columns[task_in.status] + [task_id]
            record = TaskRead(
                id=task_id,
                order=len(column) - 1,
                version=1,
                created_at=now,
                updated_at=now,
                **task_in.model_dump(),
            )
            self._commit({task_in.status: column}, {task_id: record})
            self._issued_ids.add(task_id)
            log.info("task.created", task_id=task_id, status=record.status.value, order=record.order)
            self._notify()
            return record.model_copy(deep=True)

    def update(
        self,
        task_id: str,
        changes: Union[TaskUpdate, Mapping[str, Any]],
        expected_version: Optional[int] = None,
    ) -> TaskRead:
        """Apply a partial update.

        A status change (or an explicit order) is carried out as a move: the
        task lands at the requested order in its destination column, or at the
        end of it when no order is given.
        """
        fields = _parse(TaskUpdate, changes).model_dump(exclude_unset=True)
        body_version = fields.pop("expected_version", None)
        if expected_version is None:
            expected_version = body_version

        for key, value in fields.items():
            if value is None and key not in NULLABLE_FIELDS:
                raise ValidationError(f"{key} cannot be null")
        if "title" in fields:
            _check_title(fields["title"])
        if "order" in fields and fields["order"] < 0:
            raise ValidationError("order must be non-negative")

        with self._lock:
            current = self._require(task_id)
            self._check_version(current, expected_version)

            new_status = fields.pop("status", current.status)
            new_order = fields.pop("order", None)
            columns: Columns = {}
            if new_status != current.status or new_order is not None:
                if new_order is None:
                    new_order = len(self._columns[new_status])
                columns = self._plan_move(task_id, current.status, new_status, new_order)

            record = self._revise(current, status=new_status, **fields)
            self._commit(columns, {task_id: record})
            updated = self._records[task_id]
            log.info(
                "task.updated",
                task_id=task_id,
                fields=sorted(fields),
                status=updated.status.value,
                order=updated.order,
            )
            self._notify()
            return updated.model_copy(deep=True)

    def move(
        self,
        task_id: str,
        new_status: Union[TaskStatus, str],
        new_order: int,
        expected_version: Optional[int] = None,
    ) -> TaskRead:
        """Relocate a task to ``new_order`` within ``new_status``.

        ``new_order`` is the zero-based index in the destination column after
        the move; values past the end append.
        """
        status = _coerce_status(new_status)
        if new_order < 0:
            raise ValidationError("order must be non-negative")

        with self._lock:
            current = self._require(task_id)
            self._check_version(current, expected_version)

            columns = self._plan_move(task_id, current.status, status, new_order)
            record = self._revise(current, status=status)
            self._commit(columns, {task_id: record})
            moved = self._records[task_id]
            log.info(
                "task.moved",
                task_id=task_id,
                from_status=current.status.value,
                from_order=current.order,
                to_status=moved.status.value,
                to_order=moved.order,
            )
            self._notify()
            return moved.model_copy(deep=True)

    def delete(self, task_id: str, expected_version: Optional[int] = None) -> TaskRead:
        """Remove a task and compact its former column. Returns the removed task."""
        with self._lock:
            current = self._require(task_id)
            self._check_version(current, expected_version)

            remaining = [i for i in self._columns[current.status] if i != task_id]
            self._commit({current.status: remaining}, {}, removed={task_id})
            log.info("task.deleted", task_id=task_id, status=current.status.value, order=current.order)
            self._notify()
            return current.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, task_id: str) -> TaskRead:
        record = self._records.get(task_id)
        if record is None:
            raise NotFoundError(task_id)
        return record

    @staticmethod
    def _check_version(record: TaskRead, expected: Optional[int]) -> None:
        if expected is not None and expected != record.version:
            raise ConflictError(record.id, expected, record.version)

    def _tick(self, previous: datetime) -> datetime:
        now = self._clock()
        if now <= previous:
            now = previous + timedelta(microseconds=1)
        return now

    def _revise(self, current: TaskRead, **fields: Any) -> TaskRead:
        """New record for ``current`` with ``fields`` applied, version and timestamp bumped."""
        data = current.model_dump()
        data.update(fields)
        data["version"] = current.version + 1
        data["updated_at"] = self._tick(current.updated_at)
        return _parse(TaskRead, data)

    def _plan_move(
        self, task_id: str, source: TaskStatus, destination: TaskStatus, index: int
    ) -> Columns:
        source_ids = [i for i in self._columns[source] if i != task_id]
        target_ids = source_ids if destination == source else list(self._columns[destination])
        target_ids.insert(min(index, len(target_ids)), task_id)
        columns = {destination: target_ids}
        if destination != source:
            columns[source] = source_ids
        return columns

    def _commit(
        self,
        columns: Columns,
        records: dict[str, TaskRead],
        removed: frozenset[str] | set[str] = frozenset(),
    ) -> None:
        """Reindex the changed columns, verify, then swap the staged state in."""
        staged = dict(records)
        for status, ids in columns.items():
            for index, task_id in enumerate(ids):
                record = staged.get(task_id) or self._records[task_id]
                if record.order != index or record.status != status:
                    staged[task_id] = record.model_copy(update={"order": index, "status": status})

        merged_columns = {**self._columns, **columns}
        self._verify(merged_columns, staged, removed)

        for task_id in removed:
            del self._records[task_id]
        self._records.update(staged)
        self._columns = merged_columns

    def _verify(self, columns: Columns, staged: dict[str, TaskRead], removed: Iterable[str]) -> None:
        removed = set(removed)
        expected_size = len(set(self._records) | set(staged)) - len(removed)
        placed = 0
        for status, ids in columns.items():
            if len(set(ids)) != len(ids):
                raise InvariantViolationError(f"Duplicate task in column {status.value}")
            for index, task_id in enumerate(ids):
                record = staged.get(task_id) or self._records.get(task_id)
                if record is None or task_id in removed:
                    raise InvariantViolationError(f"Column {status.value} references missing task {task_id}")
                if record.status != status or record.order != index:
                    raise InvariantViolationError(
                        f"Task {task_id} at position {index} of {status.value} "
                        f"has status={record.status.value} order={record.order}"
                    )
            placed += len(ids)
        if placed != expected_size:
            raise InvariantViolationError(f"{placed} tasks placed in columns, {expected_size} in store")
