"""
Phonebook session state.

A :class:`PhonebookSession` holds what a phonebook front end displays (the
organization tree, the current search results) and runs every directory
round trip on a worker thread.  Workers never touch that state: each one
returns a :class:`SessionEvent` on a queue, and the front end calls
:meth:`PhonebookSession.process_events` from its own thread to apply them.

Each request is numbered when it is issued.  An event is applied only if it
answers the latest request of its kind, so a slow search that finishes after
a newer one cannot overwrite the newer results.
"""

import enum
import logging
import queue
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from .directory import Directory, SearchOutcome
from .exceptions import InvalidPath
from .filters import selection_criteria
from .paths import resolve_path
from .records import DirectoryRecord
from .tree import OrgTree, TreeModel, build_tree

logger = logging.getLogger(__name__)


class EventKind(enum.Enum):
    TREE = "tree"
    RESULTS = "results"


@dataclass(frozen=True)
class SessionEvent:
    """
    The outcome of one background request.

    Exactly one of ``payload`` and ``error`` is set.  ``payload`` is an
    :class:`~ldap_phonebook.tree.OrgTree` for :attr:`EventKind.TREE` events
    and a :class:`~ldap_phonebook.directory.SearchOutcome` for
    :attr:`EventKind.RESULTS` events.
    """

    kind: EventKind
    ticket: int
    payload: Any = None
    error: Exception | None = None


class PhonebookSession:
    """
    Front-end state for one phonebook window.

    Args:
        directory: the directory to query.

    Keyword Args:
        executor: where to run directory requests; a two-worker
            :class:`~concurrent.futures.ThreadPoolExecutor` by default.

    """

    def __init__(
        self, directory: Directory, executor: Executor | None = None
    ) -> None:
        self.directory = directory
        self._owns_executor = executor is None
        self.executor: Executor = executor or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="phonebook"
        )
        self.events: queue.Queue[SessionEvent] = queue.Queue()
        self._tickets: dict[EventKind, int] = {kind: 0 for kind in EventKind}
        self.tree: OrgTree | None = None
        self.model: TreeModel | None = None
        self.results: list[DirectoryRecord] = []
        #: set when the current results came from the transliterated text
        self.fallback_text: str | None = None
        self.last_error: Exception | None = None
        self.on_tree: Callable[[TreeModel], None] | None = None
        self.on_results: Callable[[list[DirectoryRecord]], None] | None = None
        self.on_error: Callable[[Exception], None] | None = None

    def _submit(self, kind: EventKind, work: Callable[[], Any]) -> Future:
        self._tickets[kind] += 1
        ticket = self._tickets[kind]

        def task() -> SessionEvent:
            try:
                event = SessionEvent(kind, ticket, payload=work())
            except Exception as e:  # noqa: BLE001
                # every failure reaches the queue as an event
                logger.warning(
                    "session.request.failed kind=%s ticket=%d error=%r",
                    kind.value,
                    ticket,
                    e,
                )
                event = SessionEvent(kind, ticket, error=e)
            self.events.put(event)
            return event

        return self.executor.submit(task)

    def reload(self) -> Future:
        """Rebuild the organization tree from the directory in the background."""
        return self._submit(
            EventKind.TREE, lambda: build_tree(self.directory.load_records())
        )

    def search(self, text: str) -> Future:
        """Run a free-text people search in the background."""
        return self._submit(EventKind.RESULTS, lambda: self.directory.search_text(text))

    def browse(self, coordinate: str) -> Future | None:
        """
        List the people below the tree row at ``coordinate`` in the background.

        Returns:
            The pending request, or ``None`` if the row does not exist or is not
            one that selects people (the root and organization rows).

        """
        if self.model is None:
            return None
        index = self.model.node_at(coordinate)
        if index is None:
            return None
        criteria = selection_criteria(self.model.tree, index)
        if criteria is None:
            return None
        path = self.model.tree.logical_path(index)
        return self._submit(
            EventKind.RESULTS,
            lambda: SearchOutcome(
                text=path, query=path, records=self.directory.find_people(criteria)
            ),
        )

    def process_events(self, block: bool = False, timeout: float | None = None) -> int:
        """
        Apply finished requests to the session state.  Call this from the
        thread that owns the state (the UI thread).

        Keyword Args:
            block: wait for at least one event.
            timeout: how long to wait when ``block`` is set.

        Returns:
            The number of events applied.  Superseded events are dropped and
            not counted.

        """
        applied = 0
        try:
            event = self.events.get(block=block, timeout=timeout)
        except queue.Empty:
            return 0
        while True:
            if self._apply(event):
                applied += 1
            try:
                event = self.events.get_nowait()
            except queue.Empty:
                return applied

    def _apply(self, event: SessionEvent) -> bool:
        if event.ticket != self._tickets[event.kind]:
            logger.debug(
                "session.event.superseded kind=%s ticket=%d latest=%d",
                event.kind.value,
                event.ticket,
                self._tickets[event.kind],
            )
            return False
        if event.error is not None:
            self.last_error = event.error
            if self.on_error is not None:
                self.on_error(event.error)
            return True
        if event.kind is EventKind.TREE:
            self.tree = event.payload
            self.model = TreeModel(event.payload)
            if self.on_tree is not None:
                self.on_tree(self.model)
        else:
            outcome: SearchOutcome = event.payload
            self.results = outcome.records
            self.fallback_text = outcome.query if outcome.transliterated else None
            if self.on_results is not None:
                self.on_results(self.results)
        return True

    def select_person(self, index: int) -> tuple[DirectoryRecord, str | None]:
        """
        Pick a person from the current results.

        Args:
            index: position of the person in :attr:`results`.

        Raises:
            IndexError: there is no result at ``index``.

        Returns:
            The record, and the coordinate of the tree row for the record's
            organization and unit (``None`` if the tree is not loaded or the
            record has no organization).

        """
        record = self.results[index]
        if self.model is None:
            return record, None
        try:
            coordinate = resolve_path(record.tree_path, self.model)
        except InvalidPath:
            logger.debug("session.select_person.no_path dn=%s", record.dn)
            return record, None
        return record, coordinate

    def close(self) -> None:
        if self._owns_executor:
            self.executor.shutdown(wait=True)


