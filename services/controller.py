"""
Interactive explorer state: terms, related terms and study search.

ExplorerController owns everything an interactive front end needs between
events: the loaded term list, the last fetched studies, the year/sort filters,
one debouncer per live input and a request sequencer. Each request takes a
token from its channel's sequence; a response whose token is no longer the
latest is dropped, so a slow answer to an old keystroke can never overwrite a
newer result.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import requests

from app.schemas.study import StudyView
from core.config import settings
from core.http import NeurosynthHTTPError
from services import neurosynth_api
from services.boolean_query import (
    INCOMPLETE_QUERY_MESSAGE,
    append_term_to_query,
    insert_symbol,
    is_runnable_query,
)
from services.normalizer import filter_and_sort_studies, filter_terms

logger = logging.getLogger(__name__)

# Errors a remote call may raise; all are shown to the user, none are retried here
API_ERRORS = (requests.RequestException, NeurosynthHTTPError, ValueError)

TERMS = "terms"
RELATED = "related"
STUDIES = "studies"


class PanelState(str, Enum):
    IDLE = "idle"
    NOTICE = "notice"
    ERROR = "error"
    READY = "ready"


@dataclass
class Panel:
    """What one output area currently shows."""

    state: PanelState = PanelState.IDLE
    message: str = ""
    items: List[Any] = field(default_factory=list)


class Debouncer:
    """
    Run a callable only after `delay` seconds without a newer call.

    Each call() cancels the pending timer, if any. An already running callable
    is not interrupted.
    """

    def __init__(self, delay: float, timer_factory: Callable[..., threading.Timer] = threading.Timer):
        self.delay = delay
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._pending: Optional[Callable[[], Any]] = None

    def call(self, fn: Callable[..., Any], *args, **kwargs) -> None:
        with self._lock:
            self._cancel_locked()
            self._pending = lambda: fn(*args, **kwargs)
            timer = self._timer_factory(self.delay, self._fire)
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _fire(self) -> None:
        with self._lock:
            pending, self._pending, self._timer = self._pending, None, None
        if pending is not None:
            pending()

    def _cancel_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._pending = None

    def cancel(self) -> None:
        with self._lock:
            self._cancel_locked()

    def flush(self) -> None:
        """Run the pending call now, on the caller's thread."""
        with self._lock:
            pending = self._pending
            self._cancel_locked()
        if pending is not None:
            pending()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending is not None


class RequestSequencer:
    """Monotonically increasing request tokens, one sequence per channel."""

    def __init__(self):
        self._lock = threading.Lock()
        self._latest: Dict[str, int] = {}

    def next(self, channel: str) -> int:
        with self._lock:
            token = self._latest.get(channel, 0) + 1
            self._latest[channel] = token
            return token

    def is_current(self, channel: str, token: int) -> bool:
        with self._lock:
            return self._latest.get(channel) == token


class ExplorerController:
    """
    Event-driven explorer over the Neurosynth API.

    Front ends feed it input events (on_related_input, on_query_input) and
    explicit actions (submit_related, submit_query, select_term, add_related_term,
    insert_query_symbol, set_filters) and read the three panels. on_change, if
    given, is called with (channel, panel) whenever a panel changes, possibly from
    a debounce timer thread.
    """

    def __init__(
        self,
        api=neurosynth_api,
        debounce_seconds: Optional[float] = None,
        on_change: Optional[Callable[[str, Panel], None]] = None,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        delay = settings.DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        self.api = api
        self.on_change = on_change
        self.all_terms: List[str] = []
        self.related_text = ""
        self.query_text = ""
        self.last_studies: Optional[List[Any]] = None
        self.year_from: Optional[int] = None
        self.year_to: Optional[int] = None
        self.sort = "desc"
        self.panels: Dict[str, Panel] = {TERMS: Panel(), RELATED: Panel(), STUDIES: Panel()}
        self._sequencer = RequestSequencer()
        self._related_debouncer = Debouncer(delay, timer_factory)
        self._query_debouncer = Debouncer(delay, timer_factory)
        self._lock = threading.RLock()

    # --- panel bookkeeping ---

    def _show(self, channel: str, panel: Panel) -> Panel:
        with self._lock:
            self.panels[channel] = panel
        if self.on_change is not None:
            self.on_change(channel, panel)
        return panel

    def _call_api(self, channel: str, fn: Callable[..., Any], *args) -> tuple[bool, Any]:
        """
        Run one tagged request. Returns (current, result); current is False
        when a newer request on the same channel was issued meanwhile.
        """
        token = self._sequencer.next(channel)
        try:
            result = fn(*args)
        except API_ERRORS as exc:
            if not self._sequencer.is_current(channel, token):
                logger.debug("Dropping stale %s error (token %s): %s", channel, token, exc)
                return False, None
            logger.warning("%s request failed: %s", channel, exc)
            self._show(channel, Panel(PanelState.ERROR, str(exc)))
            return False, None
        if not self._sequencer.is_current(channel, token):
            logger.debug("Dropping stale %s response (token %s)", channel, token)
            return False, None
        return True, result

    def _invalidate(self, channel: str) -> None:
        """Retire any in-flight request on channel before showing a local state."""
        self._sequencer.next(channel)

    @property
    def terms_panel(self) -> Panel:
        return self.panels[TERMS]

    @property
    def related_panel(self) -> Panel:
        return self.panels[RELATED]

    @property
    def studies_panel(self) -> Panel:
        return self.panels[STUDIES]

    # --- terms ---

    def load_terms(self) -> Panel:
        ok, terms = self._call_api(TERMS, self.api.fetch_terms)
        if not ok:
            return self.terms_panel
        with self._lock:
            self.all_terms = list(terms)
        return self._render_terms(self.all_terms)

    def _render_terms(self, terms: List[str]) -> Panel:
        if not terms:
            return self._show(TERMS, Panel(PanelState.NOTICE, "No data"))
        return self._show(TERMS, Panel(PanelState.READY, "", list(terms)))

    # --- related terms ---

    def filter_term_list(self, value: Optional[str]) -> Panel:
        """Show only the loaded terms containing value (case-insensitive)."""
        with self._lock:
            self.related_text = value or ""
            terms = filter_terms(self.all_terms, self.related_text)
        return self._render_terms(terms)

    def on_related_input(self, value: str) -> None:
        """Filter the term list immediately and schedule a live related search."""
        self.filter_term_list(value)
        self._related_debouncer.call(self.run_related_search, self.related_text, True)

    def submit_related(self, term: Optional[str] = None) -> Panel:
        self._related_debouncer.cancel()
        return self.run_related_search(self.related_text if term is None else term, False)

    def select_term(self, term: str) -> Panel:
        """Pick a term from the term list: it becomes the related input and is searched."""
        with self._lock:
            self.related_text = term
        return self.submit_related(term)

    def run_related_search(self, term: Optional[str], live: bool = False) -> Panel:
        t = (term or "").strip()
        if not t:
            self._invalidate(RELATED)
            if live:
                return self._show(RELATED, Panel())
            return self._show(RELATED, Panel(PanelState.NOTICE, "Enter a term"))
        ok, related = self._call_api(RELATED, self.api.fetch_related_terms, t)
        if not ok:
            return self.related_panel
        if not related:
            return self._show(RELATED, Panel(PanelState.NOTICE, "No related terms"))
        return self._show(RELATED, Panel(PanelState.READY, "", list(related)))

    # --- studies ---

    def on_query_input(self, value: str) -> None:
        """Schedule a live study search; it only fires if the query is runnable by then."""
        with self._lock:
            self.query_text = value or ""
        self._query_debouncer.call(self.run_live_query, self.query_text)

    def run_live_query(self, value: str) -> Panel:
        """Search only if the query is runnable; otherwise leave the panel as it is."""
        if is_runnable_query(value):
            return self.run_studies_search(value.strip(), True)
        return self.studies_panel

    def submit_query(self, value: Optional[str] = None) -> Panel:
        self._query_debouncer.cancel()
        if value is not None:
            with self._lock:
                self.query_text = value
        q = self.query_text.strip()
        if not q:
            self._invalidate(STUDIES)
            return self._show(STUDIES, Panel(PanelState.NOTICE, "Enter a query"))
        if not is_runnable_query(q):
            self._invalidate(STUDIES)
            return self._show(STUDIES, Panel(PanelState.NOTICE, INCOMPLETE_QUERY_MESSAGE))
        return self.run_studies_search(q, False)

    def insert_query_symbol(self, symbol: str) -> str:
        """Insert a logic symbol at the end of the query and treat it as typing."""
        value, _ = insert_symbol(self.query_text, symbol)
        self.on_query_input(value)
        return value

    def add_related_term(self, term: str) -> Panel:
        """Append a related term to the query and search right away."""
        self._query_debouncer.cancel()
        with self._lock:
            self.query_text = append_term_to_query(self.query_text, term)
        return self.run_studies_search(self.query_text.strip(), False)

    def run_studies_search(self, query: Optional[str], live: bool = True) -> Panel:
        q = (query or "").strip()
        if not q:
            self._invalidate(STUDIES)
            if live:
                return self._show(STUDIES, Panel())
            return self._show(STUDIES, Panel(PanelState.NOTICE, "Enter a query"))
        ok, studies = self._call_api(STUDIES, self.api.fetch_studies, q)
        if not ok:
            return self.studies_panel
        with self._lock:
            self.last_studies = list(studies)
        return self.apply_filters()

    def set_filters(
        self,
        year_from: Optional[int] = None,
        year_to: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> Panel:
        with self._lock:
            self.year_from = year_from
            self.year_to = year_to
            if sort is not None:
                self.sort = sort
            if self.last_studies is None:
                return self.studies_panel
        return self.apply_filters()

    def apply_filters(self) -> Panel:
        """Re-filter and re-sort the last fetched studies with the current filters."""
        with self._lock:
            studies = list(self.last_studies or [])
            year_from, year_to, sort = self.year_from, self.year_to, self.sort
        if not studies:
            return self._show(STUDIES, Panel(PanelState.NOTICE, "No results"))
        filtered = filter_and_sort_studies(studies, year_from=year_from, year_to=year_to, sort=sort)
        if not filtered:
            return self._show(STUDIES, Panel(PanelState.NOTICE, "No results"))
        views = [StudyView.from_record(s) for s in filtered]
        return self._show(STUDIES, Panel(PanelState.READY, f"Count: {len(views)}", views))

    def close(self) -> None:
        self._related_debouncer.cancel()
        self._query_debouncer.cancel()
