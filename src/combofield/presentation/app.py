"""
DemoApp - a small form showing combobox fields at work.

Layout:
┌─────────────────────────────────────────┐
│               Header                    │
├─────────────────────────────────────────┤
│  Company      [ label        ][×][▼]    │
│  Country      [ label        ][▼]       │
│  Company id   [ raw canonical value ]   │
├─────────────────────────────────────────┤
│  Event log (label / resolution events)  │
├─────────────────────────────────────────┤
│               Footer                    │
└─────────────────────────────────────────┘
"""

from __future__ import annotations

from typing import Any, Mapping

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import Footer, Header, Input, Label, RichLog

from combofield.application import ComboboxRegistry
from combofield.domain.document import FormDocument
from combofield.domain.events import IdentifierResolved, LabelChanged, ResolutionFailed
from combofield.domain.fields import FormField
from combofield.logger import get_logger
from combofield.presentation.widgets import ComboboxField

logger = get_logger("demo_app")

DEMO_TABLES: dict[str, list[dict[str, Any]]] = {
    "companies": [
        {"id": 42, "code": "ACME", "label": "Acme Corp"},
        {"id": 7, "code": "GLOBEX", "label": "Globex Corporation"},
        {"id": 13, "code": "INITECH", "label": "Initech"},
        {"id": 99, "code": "UMBRELLA", "label": "Umbrella Corporation"},
        {"id": 5, "code": "HOOLI", "label": "Hooli"},
    ],
    "countries": [
        {"id": "ES", "label": "Spain"},
        {"id": "FR", "label": "France"},
        {"id": "DE", "label": "Germany"},
        {"id": "IT", "label": "Italy"},
        {"id": "PT", "label": "Portugal"},
    ],
}

COMPANY_OPTIONS: dict[str, Any] = {
    "autocompleteCommand": "companies",
    "altIdColumn": "code",
    "altIdIsString": True,
    "allowClear": True,
}

COUNTRY_OPTIONS: dict[str, Any] = {
    "autocompleteCommand": "countries",
    "idIsString": True,
    "minimumInputLength": 0,
}


class DemoApp(App):
    """Form with two comboboxes and a raw view of the company identifier."""

    TITLE = "combofield"
    SUB_TITLE = "Combobox fields backed by identifier lookups"

    DEFAULT_CSS = """
    #form {
        height: auto;
        padding: 1 2;
    }
    #form > Label {
        margin-top: 1;
    }
    #events {
        height: 1fr;
        border: round $primary;
    }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", priority=True),
        Binding("ctrl+r", "refresh_labels", "Refresh labels"),
    ]

    def __init__(
        self,
        registry: ComboboxRegistry,
        *,
        company_options: Mapping[str, Any] | None = None,
        country_options: Mapping[str, Any] | None = None,
        company_id: str = "42",
    ):
        """
        Initialize the demo.

        Args:
            registry: Registry holding the resolver the comboboxes use
            company_options: Binding options of the company field
            country_options: Binding options of the country field
            company_id: Initial company identifier
        """
        super().__init__()
        self.registry = registry
        self.company = FormField(name="company_id", value=company_id)
        self.country = FormField(name="country_code", value="ES")
        self.document = FormDocument([self.company, self.country])
        self._company_options = dict(company_options or COMPANY_OPTIONS)
        self._country_options = dict(country_options or COUNTRY_OPTIONS)

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="form"):
            yield Label("Company")
            yield ComboboxField(self.company, self._company_options, self.registry, id="company")
            yield Label("Country")
            yield ComboboxField(self.country, self._country_options, self.registry, id="country")
            yield Label("Company id (edit to resolve forward)")
            yield Input(value=self.company.value, id="company-id")
        yield RichLog(id="events", markup=False)
        yield Footer()

    def on_mount(self) -> None:
        bus = self.registry.event_bus
        bus.subscribe(LabelChanged, self._on_label_changed)
        bus.subscribe(IdentifierResolved, self._on_identifier_resolved)
        bus.subscribe(ResolutionFailed, self._on_resolution_failed)
        self._remove_company_listener = self.company.listen("change", lambda event: self._show_company_id())
        logger.info("Demo app mounted")

    def on_unmount(self) -> None:
        self._remove_company_listener()
        bus = self.registry.event_bus
        bus.unsubscribe(LabelChanged, self._on_label_changed)
        bus.unsubscribe(IdentifierResolved, self._on_identifier_resolved)
        bus.unsubscribe(ResolutionFailed, self._on_resolution_failed)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "company-id":
            self.company.set_value(event.value)

    async def action_refresh_labels(self) -> None:
        for binder in self.registry.binders:
            try:
                await binder.refresh()
            except Exception as e:
                self._log(f"refresh of #{binder.correlation_id} failed: {e}", "red")

    def _show_company_id(self) -> None:
        raw = self.query_one("#company-id", Input)
        if raw.value != self.company.value:
            raw.value = self.company.value

    def _log(self, message: str, style: str = "") -> None:
        self.query_one("#events", RichLog).write(Text(message, style=style))

    def _on_label_changed(self, event: LabelChanged) -> None:
        self._log(f"#{event.correlation_id} label -> {event.label!r}", "cyan")

    def _on_identifier_resolved(self, event: IdentifierResolved) -> None:
        self._log(f"#{event.correlation_id} value -> {event.value!r} ({event.label})", "green")

    def _on_resolution_failed(self, event: ResolutionFailed) -> None:
        self._log(f"#{event.correlation_id} lookup of {event.request.value!r} failed: {event.error}", "red")
