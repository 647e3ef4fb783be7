"""
ComboboxRegistry - binds and unbinds comboboxes within one application.

The registry replaces process-wide state: it mints correlation identifiers,
owns the shared default resolver and event bus, and remembers the binder of
every bound field so re-binding tears the previous one down first.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping

from combofield.application.binder import ComboboxBinder
from combofield.domain.config import BindingConfig
from combofield.domain.events import EventBus
from combofield.domain.exceptions import BindingConfigError, BindingTargetError
from combofield.domain.fields import (
    IDVAL_ATTR,
    SEQ_ATTR,
    Affordance,
    AffordanceKind,
    FieldPair,
    FormField,
    ProxyField,
)
from combofield.domain.protocols import RowResolver, SuggestionList
from combofield.logger import get_logger

if TYPE_CHECKING:
    from combofield.config import Settings
    from combofield.domain.document import FormDocument

logger = get_logger("registry")

__all__ = ["ComboboxRegistry", "SuggestionsFactory", "COLLAPSED_STYLE"]

SuggestionsFactory = Callable[[Any], SuggestionList]

PROXY_CLASS = "combobox-search"

# Zero-sized but still focusable
COLLAPSED_STYLE = {
    "width": "0px",
    "height": "0px",
    "border": "none",
    "margin": "0px",
    "padding": "0px",
}


class ComboboxRegistry:
    """Per-application registry of combobox bindings."""

    def __init__(
        self,
        *,
        resolver: RowResolver | None = None,
        event_bus: EventBus | None = None,
        suggestions_factory: SuggestionsFactory | None = None,
        settings: "Settings | None" = None,
    ):
        """
        Initialize the registry.

        Args:
            resolver: Default resolver shared by bindings that do not configure one
            event_bus: Bus on which binders publish their events (a new one when None)
            suggestions_factory: Builds the suggestion list of each new binder
            settings: Settings used to build the default HTTP resolver lazily
        """
        self._resolver = resolver
        self.event_bus = event_bus or EventBus()
        self.suggestions_factory = suggestions_factory
        self._settings = settings
        self._last_correlation_id = 0
        self._binders: dict[int, ComboboxBinder] = {}

    @property
    def default_resolver(self) -> RowResolver:
        """The shared resolver, built from settings on first use.

        Raises:
            BindingConfigError: If no resolver was given and no base URL is configured
        """
        if self._resolver is None:
            from combofield.config import load_settings
            from combofield.infrastructure.resolvers import HttpRowResolver

            settings = self._settings or load_settings()
            if not settings.base_url:
                raise BindingConfigError(
                    "No resolver configured: pass one in the binding options, to the registry, "
                    "or set COMBOFIELD_BASE_URL"
                )
            self._resolver = HttpRowResolver(settings.base_url, timeout=settings.timeout)
            logger.info(f"Created shared HTTP resolver for {settings.base_url}")
        return self._resolver

    def next_correlation_id(self) -> int:
        self._last_correlation_id += 1
        return self._last_correlation_id

    def binder_for(self, target: FormField | Iterable[FormField]) -> ComboboxBinder | None:
        field = _single_field(target)
        correlation_id = _correlation_id_of(field)
        if correlation_id is None:
            return None
        return self._binders.get(correlation_id)

    @property
    def binders(self) -> list[ComboboxBinder]:
        return list(self._binders.values())

    def bind(
        self,
        target: FormField | Iterable[FormField],
        options: BindingConfig | Mapping[str, Any],
    ) -> ComboboxBinder:
        """
        Turn a field into a combobox.

        Re-binding an already bound field reuses its correlation identifier and
        replaces its proxy and affordances instead of duplicating them.

        Args:
            target: Exactly one attached field (or a one-element sequence of it)
            options: BindingConfig or a mapping of binding options

        Returns:
            The attached ComboboxBinder

        Raises:
            BindingConfigError: If the options are invalid (nothing is mutated)
            BindingTargetError: If the target is not exactly one attached field
            RuntimeError: If called outside a running event loop
        """
        config = BindingConfig.coerce(options)
        field = _single_field(target)
        if isinstance(field, ProxyField) or PROXY_CLASS in field.classes:
            raise BindingTargetError("Cannot bind a combobox search field")
        document = field.document
        if document is None or not field.is_attached:
            raise BindingTargetError(f"{field!r} is not attached to a document")
        resolver = config.resolver if config.resolver is not None else self.default_resolver
        try:
            asyncio.get_running_loop()
        except RuntimeError as e:
            raise RuntimeError("ComboboxRegistry.bind() must be called from a running event loop") from e

        correlation_id = _correlation_id_of(field)
        if correlation_id is None:
            correlation_id = self.next_correlation_id()
            field.data[SEQ_ATTR] = str(correlation_id)
        previous = self._binders.pop(correlation_id, None)
        if previous is not None:
            previous.detach()
            _remove_nodes(document, previous.pair.owned_nodes())

        if field.saved_style is not None:
            field.style = dict(field.saved_style)
        _remove_stale_siblings(document, field, correlation_id)

        proxy = ProxyField(
            value=field.value,
            readonly=field.readonly,
            disabled=field.disabled,
            node_id=f"__combobox-search__{correlation_id}",
            classes=field.classes | {PROXY_CLASS},
            style=dict(field.style),
            tab_index=-1,
        )
        proxy.data[SEQ_ATTR] = str(correlation_id)
        document.insert_after(field, proxy)
        anchor = proxy

        clear = None
        if config.allow_clear:
            clear = Affordance(AffordanceKind.CLEAR, visible=False, classes=("combobox-clear",))
            clear.data[SEQ_ATTR] = str(correlation_id)
            document.insert_after(anchor, clear)
            anchor = clear

        dropdown = Affordance(AffordanceKind.DROPDOWN, classes=("combobox-chevron-down",))
        dropdown.data[SEQ_ATTR] = str(correlation_id)
        document.insert_after(anchor, dropdown)

        if field.saved_style is None:
            field.saved_style = dict(field.style)
        field.style.update(COLLAPSED_STYLE)

        pair = FieldPair(correlation_id=correlation_id, canonical=field, proxy=proxy, dropdown=dropdown, clear=clear)
        binder = ComboboxBinder(pair, config, resolver, event_bus=self.event_bus)
        if self.suggestions_factory is not None:
            binder.suggestions = self.suggestions_factory(binder)
        self._binders[correlation_id] = binder
        binder.attach()

        logger.info(
            f"Bound combobox {correlation_id} to field {field.name!r} "
            f"(command={config.autocomplete_command!r}, alt={config.alt_id_column!r})"
        )
        return binder

    def unbind(self, target: FormField | Iterable[FormField]) -> bool:
        """
        Remove the combobox from a field and restore the field.

        Returns:
            True if the field was bound, False otherwise
        """
        field = _single_field(target)
        correlation_id = _correlation_id_of(field)
        if correlation_id is None:
            return False

        binder = self._binders.pop(correlation_id, None)
        document = field.document
        if binder is not None:
            binder.detach()
            for node in binder.pair.owned_nodes():
                if node.document is not None:
                    node.document.remove(node)
        if document is not None and field.is_attached:
            _remove_stale_siblings(document, field, correlation_id)

        if field.saved_style is not None:
            field.style = dict(field.saved_style)
            field.saved_style = None
        field.data.pop(SEQ_ATTR, None)
        field.data.pop(IDVAL_ATTR, None)
        logger.info(f"Unbound combobox {correlation_id} from field {field.name!r}")
        return True

    def unbind_all(self) -> None:
        for binder in list(self._binders.values()):
            self.unbind(binder.pair.canonical)


def _single_field(target: FormField | Iterable[FormField]) -> FormField:
    if isinstance(target, FormField):
        return target
    if isinstance(target, (str, bytes)) or not isinstance(target, Iterable):
        raise BindingTargetError(f"Expected a form field, got {type(target).__name__}")
    fields = list(target)
    if len(fields) != 1:
        raise BindingTargetError(f"Expected exactly one field, got {len(fields)}")
    field = fields[0]
    if not isinstance(field, FormField):
        raise BindingTargetError(f"Expected a form field, got {type(field).__name__}")
    return field


def _correlation_id_of(field: FormField) -> int | None:
    raw = field.data.get(SEQ_ATTR)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _remove_nodes(document: "FormDocument", nodes) -> None:
    for node in nodes:
        if node.document is document:
            document.remove(node)


def _remove_stale_siblings(document: "FormDocument", field: FormField, correlation_id: int) -> None:
    stale = [
        node
        for node in document.following(field)
        if node.data.get(SEQ_ATTR) == str(correlation_id) and isinstance(node, (ProxyField, Affordance))
    ]
    for node in stale:
        document.remove(node)
    if stale:
        logger.debug(f"Removed {len(stale)} stale node(s) of combobox {correlation_id}")
