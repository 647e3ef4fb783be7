"""
ComboboxBinder - keeps a canonical identifier field and its proxy label field in sync.

The binder owns one FieldPair. External changes to the canonical field are
resolved forward (identifier -> label) and shown in the proxy; text typed
into the proxy is resolved in reverse (text -> identifier) when the proxy
loses focus and written back into the canonical field.

All handlers are synchronous and run on the event loop; resolutions are
scheduled as tasks. Only the response of the most recently issued request
is ever applied.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Callable, Coroutine

from combofield.application.mirror import AttributeMirror
from combofield.application.sequencer import RequestSequencer
from combofield.domain.config import BindingConfig
from combofield.domain.events import EventBus, IdentifierResolved, LabelChanged, ResolutionFailed
from combofield.domain.exceptions import ResolverError
from combofield.domain.fields import IDVAL_ATTR, FieldEvent, FieldPair, FormNode
from combofield.domain.protocols import RowResolver
from combofield.domain.types import (
    BinderState,
    Direction,
    ResolutionRequest,
    Row,
    empty_identifier,
    normalize_identifier,
)
from combofield.logger import get_logger

if TYPE_CHECKING:
    from combofield.domain.protocols import SuggestionList

logger = get_logger("binder")

__all__ = ["ComboboxBinder", "ACTIVE_CLASS"]

ACTIVE_CLASS = "active"


class ComboboxBinder:
    """Orchestrates focus, typing, resolution and mirroring for one FieldPair."""

    def __init__(
        self,
        pair: FieldPair,
        config: BindingConfig,
        resolver: RowResolver,
        *,
        event_bus: EventBus | None = None,
    ):
        self.pair = pair
        self.config = config
        self._resolver = resolver
        self._bus = event_bus
        self._sequencer = RequestSequencer()
        self._mirror = AttributeMirror(pair, allow_clear=config.allow_clear, id_is_string=config.id_is_string)
        self._state = BinderState.IDLE
        self._suppressed_value: str | None = None
        self._normalizing = False
        self._removers: list[Callable[[], None]] = []
        self._subscription = None
        self._tasks: set[asyncio.Task] = set()
        self._params = dict(config.extra_query_parameters) if config.extra_query_parameters else None
        self.suggestions: SuggestionList | None = None

    # -- public API ----------------------------------------------------------

    @property
    def state(self) -> BinderState:
        return self._state

    @property
    def correlation_id(self) -> int:
        return self.pair.correlation_id

    @property
    def resolver(self) -> RowResolver:
        return self._resolver

    @property
    def sequencer(self) -> RequestSequencer:
        return self._sequencer

    @property
    def mirror(self) -> AttributeMirror:
        return self._mirror

    @property
    def value(self) -> str:
        return self.pair.canonical.value

    @property
    def label(self) -> str:
        return self.pair.proxy.value

    # Suggestion list context (shared with AutocompleteBinder)
    @property
    def command(self) -> str:
        return self.config.autocomplete_command

    @property
    def input_field(self):
        return self.pair.proxy

    @property
    def minimum_input_length(self) -> int:
        return self.config.minimum_input_length

    @property
    def page_size(self) -> int:
        return self.config.max_rows_per_page

    @property
    def query_params(self) -> dict[str, str] | None:
        return self._params

    def attach(self) -> None:
        """Install event handlers and the attribute subscription, then resolve the initial value."""
        canonical, proxy = self.pair.canonical, self.pair.proxy
        self._on(canonical, "focus", self._canonical_focused)
        self._on(canonical, "blur", self._canonical_blurred)
        self._on(canonical, "keypress", self._canonical_keypress)
        self._on(canonical, "change", self._canonical_change)
        self._on(proxy, "focus", self._proxy_focused)
        self._on(proxy, "blur", self._proxy_blurred)
        self._on(proxy, "keypress", self._proxy_keypress)
        self._on(proxy, "input", self._proxy_input)
        self._on(proxy, "mousedown", self._proxy_mousedown)
        if self.pair.clear is not None:
            self._on(self.pair.clear, "click", self._clear_clicked)
        self._on(self.pair.dropdown, "mousedown", self._dropdown_mousedown)

        document = canonical.document
        if document is not None:
            self._subscription = document.watch(canonical, ("readonly", "disabled"), self._canonical_attribute_changed)

        self._canonical_changed()
        self._mirror.sync()

    def detach(self) -> None:
        """Deregister every handler, cancel the subscription and in-flight resolutions."""
        if self._state is BinderState.DETACHED:
            return
        self._enter(BinderState.DETACHED)
        for remove in self._removers:
            remove()
        self._removers.clear()
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        for task in list(self._tasks):
            task.cancel()
        self.suggestions = None
        logger.debug(f"Binder {self.correlation_id} detached")

    async def refresh(self) -> None:
        """Re-run forward resolution for the current canonical value and wait for it.

        Raises:
            ResolverError: If the resolver failed; the label is left unchanged
        """
        if not self._alive():
            return
        request = self._prepare_forward()
        if request is not None:
            await self._run_forward(request)
        self._mirror.sync()

    async def drain(self) -> None:
        """Wait until every scheduled resolution has finished."""
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def select(self, row: Row) -> None:
        """Apply a row chosen from the suggestion list."""
        if not self._alive():
            return
        # Invalidate any lookup still in flight for an older value
        self._sequencer.next()
        self._suppressed_value = normalize_identifier(row.value, self.config.id_is_string)
        self._set_label(row.label)
        self._enter(BinderState.IDLE)
        self.pair.canonical.set_value(row.value)
        self._publish(IdentifierResolved(self.correlation_id, self.pair.canonical.value, row.label))
        self._focus_canonical()
        self._mirror.sync()

    def highlight(self, row: Row) -> None:
        """Suggestion focus callback; the proxy keeps its typed text."""

    # -- plumbing ------------------------------------------------------------

    def _on(self, node: FormNode, event_type: str, handler: Callable[[FieldEvent], None]) -> None:
        def listener(event: FieldEvent) -> None:
            if self._alive():
                handler(event)

        self._removers.append(node.listen(event_type, listener))

    def _alive(self) -> bool:
        if self._state is BinderState.DETACHED:
            return False
        if not self.pair.is_attached:
            logger.debug(f"Proxy of binder {self.correlation_id} left the document; tearing down")
            self.detach()
            return False
        return True

    def _enter(self, state: BinderState) -> None:
        if state is not self._state:
            logger.debug(f"Binder {self.correlation_id}: {self._state.value} -> {state.value}")
            self._state = state

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        # Raises RuntimeError when called off the event loop
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None and not isinstance(error, ResolverError):
            logger.error(f"Resolution task of binder {self.correlation_id} failed: {error!r}")

    def _publish(self, event) -> None:
        if self._bus is not None:
            self._bus.publish(event)

    def _set_label(self, label: str) -> None:
        proxy = self.pair.proxy
        proxy.value = label
        proxy.current_label = label
        proxy.dispatch("change")
        self._publish(LabelChanged(self.correlation_id, label))

    def _focus_canonical(self) -> None:
        canonical = self.pair.canonical
        if not canonical.disabled and canonical.document is not None:
            canonical.document.focus(canonical)

    def _forward_focus(self) -> None:
        document = self.pair.canonical.document
        if document is None or self._state is BinderState.DETACHED:
            return
        if document.focused is self.pair.canonical and not self.pair.proxy.disabled:
            document.focus(self.pair.proxy)

    # -- forward resolution ----------------------------------------------------

    def _canonical_changed(self) -> None:
        request = self._prepare_forward()
        if request is not None:
            self._spawn(self._run_forward(request))

    def _prepare_forward(self) -> ResolutionRequest | None:
        canonical = self.pair.canonical
        is_string = self.config.id_is_string
        idval = normalize_identifier(canonical.value, is_string)
        if idval != canonical.value:
            logger.debug(f"Binder {self.correlation_id}: normalized {canonical.value!r} to {idval!r}")
            self._normalizing = True
            try:
                canonical.set_value(idval)
            finally:
                self._normalizing = False
        canonical.data[IDVAL_ATTR] = idval
        self._mirror.update_affordances()

        if idval == empty_identifier(is_string):
            self._suppressed_value = None
            self._sequencer.next()
            self._set_label(self.config.select_placeholder)
            self._enter(BinderState.IDLE)
            return None

        if self._suppressed_value is not None:
            suppressed, self._suppressed_value = self._suppressed_value, None
            if suppressed == idval:
                logger.debug(f"Binder {self.correlation_id}: label for {idval!r} already known, lookup skipped")
                self._enter(BinderState.IDLE)
                return None
            logger.debug(f"Binder {self.correlation_id}: dropped suppression for {suppressed!r}, value is {idval!r}")

        request = ResolutionRequest(
            sequence=self._sequencer.next(),
            column=self.config.id_column,
            value=idval,
            direction=Direction.FORWARD,
            is_string=is_string,
        )
        self._enter(BinderState.RESOLVING_FORWARD)
        return request

    async def _run_forward(self, request: ResolutionRequest) -> None:
        row = await self._resolve(request)
        if not self._accept(request):
            return
        self._set_label(row.label if row is not None else self.config.not_found_message)
        self._enter(BinderState.IDLE)
        self._mirror.sync()

    # -- reverse resolution ----------------------------------------------------

    async def _run_reverse(self, request: ResolutionRequest) -> None:
        row = await self._resolve(request)
        if not self._accept(request):
            return
        self._enter(BinderState.IDLE)
        if row is None:
            self._set_label(self.config.not_found_message)
        else:
            self._suppressed_value = normalize_identifier(row.value, self.config.id_is_string)
            self._set_label(row.label)
            self.pair.canonical.set_value(row.value)
            self._publish(IdentifierResolved(self.correlation_id, self.pair.canonical.value, row.label))
        self._mirror.sync()

    async def _resolve(self, request: ResolutionRequest) -> Row | None:
        try:
            return await self._resolver.resolve_by_id(
                self.config.autocomplete_command,
                request.column,
                request.value,
                request.is_string,
                self._params,
            )
        except ResolverError as e:
            self._resolution_failed(request, e)
            raise
        except Exception as e:
            error = ResolverError(
                f"Resolver failed: {e}", command=self.config.autocomplete_command, column=request.column
            )
            self._resolution_failed(request, error)
            raise error from e

    def _accept(self, request: ResolutionRequest) -> bool:
        if self._state is BinderState.DETACHED:
            return False
        if not self._sequencer.is_current(request.sequence):
            logger.debug(
                f"Binder {self.correlation_id}: discarded stale {request.direction.value} response "
                f"#{request.sequence} (current #{self._sequencer.current()})"
            )
            return False
        return True

    def _resolution_failed(self, request: ResolutionRequest, error: ResolverError) -> None:
        if self._state is BinderState.DETACHED or not self._sequencer.is_current(request.sequence):
            logger.debug(
                f"Binder {self.correlation_id}: superseded {request.direction.value} lookup "
                f"#{request.sequence} failed: {error}"
            )
            return
        logger.warning(
            f"Binder {self.correlation_id}: {request.direction.value} lookup of {request.value!r} "
            f"on {request.column!r} failed: {error}"
        )
        self._enter(BinderState.IDLE)
        self._publish(ResolutionFailed(self.correlation_id, request, error))

    # -- canonical field handlers ------------------------------------------------

    def _canonical_focused(self, event: FieldEvent) -> None:
        self.pair.proxy.classes.add(ACTIVE_CLASS)
        self._mirror.sync()
        # Deferred so a keystroke delivered in the same tick is still redirected
        try:
            asyncio.get_running_loop().call_soon(self._forward_focus)
        except RuntimeError:
            self._forward_focus()

    def _canonical_blurred(self, event: FieldEvent) -> None:
        self.pair.proxy.classes.discard(ACTIVE_CLASS)
        self._mirror.sync()

    def _canonical_keypress(self, event: FieldEvent) -> None:
        event.prevent_default()
        canonical, proxy = self.pair.canonical, self.pair.proxy
        if canonical.editable and event.key and len(event.key) == 1:
            proxy.value = event.key
            self._enter(BinderState.USER_EDITING)
            document = canonical.document
            if document is not None:
                document.focus(proxy)
            self._proxy_input(event)
        self._mirror.sync()

    def _canonical_change(self, event: FieldEvent) -> None:
        if self._normalizing:
            return
        self._canonical_changed()
        self._mirror.sync()

    def _canonical_attribute_changed(self, name: str, old: object, new: object) -> None:
        if self._alive():
            self._mirror.sync()

    # -- proxy field handlers -------------------------------------------------------

    def _proxy_focused(self, event: FieldEvent) -> None:
        self.pair.proxy.classes.discard(ACTIVE_CLASS)
        self._mirror.sync()

    def _proxy_blurred(self, event: FieldEvent) -> None:
        proxy = self.pair.proxy
        text = proxy.value
        typed = self._state is BinderState.USER_EDITING
        if text != "" and typed:
            if self.config.alt_id_column:
                request = ResolutionRequest(
                    sequence=self._sequencer.next(),
                    column=self.config.alt_id_column,
                    value=text,
                    direction=Direction.REVERSE,
                    is_string=self.config.alt_id_is_string,
                )
                self._enter(BinderState.RESOLVING_REVERSE)
                self._spawn(self._run_reverse(request))
            else:
                self._enter(BinderState.IDLE)
                self.pair.canonical.set_value(text)
        else:
            if typed:
                self._enter(BinderState.IDLE)
            proxy.value = proxy.current_label or ""
            proxy.dispatch("change")
        self._mirror.sync()

    def _proxy_keypress(self, event: FieldEvent) -> None:
        self._enter(BinderState.USER_EDITING)
        self._mirror.sync()

    def _proxy_input(self, event: FieldEvent) -> None:
        if self.suggestions is None:
            return
        text = self.pair.proxy.value
        if len(text) >= self.config.minimum_input_length:
            self.suggestions.search(text)
        elif self.suggestions.is_open:
            self.suggestions.close()

    def _proxy_mousedown(self, event: FieldEvent) -> None:
        canonical, proxy = self.pair.canonical, self.pair.proxy
        if proxy.has_focus:
            return
        event.prevent_default()
        if canonical.disabled:
            return
        if canonical.has_focus:
            self._forward_focus()
        else:
            self._focus_canonical()

    # -- affordance handlers ----------------------------------------------------------

    def _clear_clicked(self, event: FieldEvent) -> None:
        canonical = self.pair.canonical
        if canonical.editable:
            canonical.set_value(self.config.empty_value)
        self._focus_canonical()

    def _dropdown_mousedown(self, event: FieldEvent) -> None:
        event.prevent_default()
        canonical = self.pair.canonical
        self._focus_canonical()
        if canonical.editable and self.suggestions is not None:
            if self.suggestions.is_open:
                self.suggestions.close()
            else:
                self.suggestions.show_all()
