from __future__ import annotations

import logging

from .channel import Channel
from .context import AppContext
from .errors import DELETE_FAILED_MESSAGE, SUBSCRIPTION_FAILED_MESSAGE, ErrorSlot, StoreWriteError
from .forms import FormController
from .gateway import MutationGateway
from .providers.base import AuthProvider, Identity, Unsubscribe
from .schemas import ALL_CATEGORIES, CATEGORIES, Material
from .session import SessionBootstrapper
from .subscriber import RecordEvent, RecordStoreSubscriber, SnapshotEvent, SubscriptionFailed
from .view_model import FilterState, Summary, apply_filters, summarize

logger = logging.getLogger(__name__)


class MaterialTracker:
    """State of one browser session.

    Wires the session bootstrapper to the subscriber, owns the raw record list,
    the loading flag, the error slot, the filter state and the form, and
    applies channel events in delivery order whenever ``pump`` is called.
    """

    def __init__(self, ctx: AppContext, auth: AuthProvider | None = None) -> None:
        self.ctx = ctx
        self.errors = ErrorSlot()
        self.channel: Channel[RecordEvent] = Channel()
        self.session = SessionBootstrapper(ctx, self.errors, auth=auth)
        self.subscriber = RecordStoreSubscriber(ctx, self.channel)
        self.gateway = MutationGateway(ctx)
        self.form = FormController(self.gateway, self.errors)
        self.filters = FilterState()
        self.materials: list[Material] = []
        self.loading = True
        self._unsubscribe_session: Unsubscribe | None = None

    @property
    def identity(self) -> Identity | None:
        return self.session.identity

    def _on_identity(self, identity: Identity | None) -> None:
        self.subscriber.bind(identity)
        if identity is None:
            # drop anything the old subscription delivered before teardown
            self.channel.drain()
            self.materials = []

    def start(self) -> "MaterialTracker":
        if self._unsubscribe_session is None:
            self._unsubscribe_session = self.session.subscribe(self._on_identity)
        identity = self.session.start()
        if identity is None:
            # nothing will ever arrive; let the UI render its empty/error state
            self.loading = False
        self.pump()
        return self

    def pump(self) -> int:
        events = self.channel.drain()
        for event in events:
            if isinstance(event, SnapshotEvent):
                self.materials = list(event.materials)
            elif isinstance(event, SubscriptionFailed):
                self.errors.set(SUBSCRIPTION_FAILED_MESSAGE)
            self.loading = False
        return len(events)

    # -------------------------
    # Derived views
    # -------------------------
    @property
    def visible(self) -> list[Material]:
        return apply_filters(self.materials, self.filters)

    @property
    def summary(self) -> Summary:
        return summarize(self.materials)

    def set_search(self, term: str) -> None:
        self.filters.search_term = term or ""

    def set_category(self, category: str) -> None:
        if category != ALL_CATEGORIES and category not in CATEGORIES:
            raise ValueError(f"unknown category: {category!r}")
        self.filters.filter_category = category

    # -------------------------
    # Actions
    # -------------------------
    def submit(self) -> bool:
        return self.form.submit(self.identity)

    def delete(self, material_id: str) -> bool:
        try:
            self.gateway.remove(material_id)
        except StoreWriteError:
            self.errors.set(DELETE_FAILED_MESSAGE)
            return False
        return True

    def dismiss_error(self) -> None:
        self.errors.clear()

    def close(self) -> None:
        self.subscriber.close()
        if self._unsubscribe_session is not None:
            self._unsubscribe_session()
            self._unsubscribe_session = None
        self.session.stop()
        logger.info("tracker closed")
