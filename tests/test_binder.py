"""Tests for ComboboxBinder resolution, focus handling and teardown."""

import asyncio
from itertools import permutations

import pytest

from combofield.application import ComboboxRegistry
from combofield.application.binder import ACTIVE_CLASS
from combofield.domain.events import IdentifierResolved, LabelChanged, ResolutionFailed
from combofield.domain.exceptions import ResolverError
from combofield.domain.fields import IDVAL_ATTR, FormField
from combofield.domain.types import BinderState, Row

from conftest import COMPANY_ALT_OPTIONS, COMPANY_OPTIONS, FakeSuggestions, settle


async def bind_resolved(registry, field, options, scripted):
    """Bind and answer the initial forward lookup."""
    binder = registry.bind(field, options)
    await settle()
    if scripted.pending:
        scripted.release()
        await settle()
    return binder


class TestForwardResolution:
    @pytest.mark.asyncio
    async def test_initial_value_is_resolved_on_bind(self, scripted_registry, scripted, company_field):
        binder = scripted_registry.bind(company_field, COMPANY_OPTIONS)
        assert binder.state is BinderState.RESOLVING_FORWARD

        await settle()
        assert scripted.calls == [("companies", "id", "42", None)]

        scripted.release()
        await settle()

        assert binder.label == "Acme Corp"
        assert binder.pair.proxy.current_label == "Acme Corp"
        assert binder.state is BinderState.IDLE
        assert company_field.data[IDVAL_ATTR] == "42"

    @pytest.mark.asyncio
    async def test_external_change_resolves_new_label(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)

        company_field.set_value("7")
        await settle()
        scripted.release()
        await settle()

        assert binder.label == "Globex Corporation"
        assert company_field.value == "7"

    @pytest.mark.asyncio
    async def test_unknown_identifier_shows_not_found_message(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)

        company_field.set_value("999")
        await settle()
        scripted.release()
        await settle()

        assert binder.label == "*** INVALID ***"
        assert binder.state is BinderState.IDLE

    @pytest.mark.asyncio
    async def test_non_numeric_value_normalizes_to_zero_and_shows_placeholder(
        self, scripted_registry, scripted, company_field
    ):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)
        calls_before = len(scripted.calls)

        company_field.set_value("abc")
        await settle()

        assert company_field.value == "0"
        assert binder.label == "Select an item"
        assert len(scripted.calls) == calls_before
        assert not scripted.pending

    @pytest.mark.asyncio
    async def test_leading_digits_are_kept(self, scripted_registry, scripted, company_field):
        await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)

        company_field.set_value(" 13abc")
        await settle()

        assert company_field.value == "13"
        assert scripted.calls[-1] == ("companies", "id", "13", None)

    @pytest.mark.asyncio
    async def test_string_identifier_is_not_normalized(self, scripted, document):
        field = FormField(name="country", value=" es ")
        document.add(field)
        registry = ComboboxRegistry(resolver=scripted)
        registry.bind(field, {"autocompleteCommand": "countries", "idIsString": True})
        await settle()

        assert field.value == " es "
        assert scripted.calls == [("countries", "id", " es ", None)]

    @pytest.mark.asyncio
    async def test_extra_query_parameters_reach_the_resolver(self, scripted, company_field):
        registry = ComboboxRegistry(resolver=scripted)
        registry.bind(company_field, {"autocompleteCommand": "companies", "extraQueryParameters": {"tenant": "t1"}})
        await settle()

        assert scripted.calls == [("companies", "id", "42", {"tenant": "t1"})]


class TestStaleResponses:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("order", list(permutations(range(3))))
    async def test_only_last_issued_request_is_applied(self, order, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)

        for value in ("7", "42", "13"):
            company_field.set_value(value)
        await settle()
        assert [lookup.value for lookup in scripted.pending] == ["7", "42", "13"]

        lookups = list(scripted.pending)
        for index in order:
            lookup = lookups[index]
            scripted.release(scripted.pending.index(lookup))
            await settle()

        assert binder.label == "Initech"
        assert binder.state is BinderState.IDLE

    @pytest.mark.asyncio
    async def test_late_response_does_not_overwrite_placeholder(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)

        company_field.set_value("7")
        await settle()
        company_field.set_value("")
        await settle()
        assert company_field.value == "0"

        scripted.release()
        await settle()

        assert binder.label == "Select an item"

    @pytest.mark.asyncio
    async def test_late_forward_response_does_not_overwrite_selection(
        self, scripted_registry, scripted, company_field
    ):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)

        company_field.set_value("7")
        await settle()
        binder.select(Row(value="13", label="Initech"))
        scripted.release()
        await settle()

        assert binder.label == "Initech"
        assert company_field.value == "13"


class TestReverseResolution:
    @pytest.mark.asyncio
    async def test_typed_text_resolves_through_alternate_column(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_ALT_OPTIONS, scripted)
        document = company_field.document
        resolved = []
        scripted_registry.event_bus.subscribe(IdentifierResolved, resolved.append)

        document.focus(binder.pair.proxy)
        document.type_text("GLOBEX", replace=True)
        assert binder.state is BinderState.USER_EDITING
        document.blur()
        assert binder.state is BinderState.RESOLVING_REVERSE

        await settle()
        assert scripted.calls[-1] == ("companies", "code", "GLOBEX", None)
        scripted.release()
        await settle()

        assert company_field.value == "7"
        assert binder.label == "Globex Corporation"
        assert binder.state is BinderState.IDLE
        assert [(e.value, e.label) for e in resolved] == [("7", "Globex Corporation")]
        # The label is already known, so the change of the canonical value issues no lookup
        assert len(scripted.calls) == 2
        assert not scripted.pending

    @pytest.mark.asyncio
    async def test_unknown_typed_text_shows_not_found_message(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_ALT_OPTIONS, scripted)
        document = company_field.document

        document.focus(binder.pair.proxy)
        document.type_text("NOPE", replace=True)
        document.blur()
        await settle()
        scripted.release()
        await settle()

        assert binder.label == "*** INVALID ***"
        assert company_field.value == "42"

    @pytest.mark.asyncio
    async def test_typed_text_without_alternate_column_becomes_the_identifier(
        self, scripted_registry, scripted, company_field
    ):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)
        document = company_field.document

        document.focus(binder.pair.proxy)
        document.type_text("13", replace=True)
        document.blur()
        await settle()

        assert company_field.value == "13"
        assert scripted.calls[-1] == ("companies", "id", "13", None)
        scripted.release()
        await settle()
        assert binder.label == "Initech"

    @pytest.mark.asyncio
    async def test_blur_without_typing_restores_label(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_ALT_OPTIONS, scripted)
        document = company_field.document
        proxy = binder.pair.proxy

        document.focus(proxy)
        proxy.value = "scribble"
        document.blur()
        await settle()

        assert binder.label == "Acme Corp"
        assert len(scripted.calls) == 1

    @pytest.mark.asyncio
    async def test_emptied_text_restores_label(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_ALT_OPTIONS, scripted)
        document = company_field.document

        document.focus(binder.pair.proxy)
        document.type_text("A", replace=True)
        document.backspace()
        document.blur()
        await settle()

        assert binder.label == "Acme Corp"
        assert binder.state is BinderState.IDLE
        assert company_field.value == "42"


class TestSelection:
    @pytest.mark.asyncio
    async def test_select_writes_value_without_lookup(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)
        calls_before = len(scripted.calls)

        binder.select(Row(value="7", label="Globex Corporation"))
        await settle()

        assert company_field.value == "7"
        assert binder.label == "Globex Corporation"
        assert len(scripted.calls) == calls_before
        assert company_field.document.focused is binder.pair.proxy

    @pytest.mark.asyncio
    async def test_suppression_applies_to_one_change_only(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)

        binder.select(Row(value="7", label="Globex Corporation"))
        company_field.set_value("13")
        await settle()

        assert scripted.calls[-1] == ("companies", "id", "13", None)

    @pytest.mark.asyncio
    async def test_mutation_before_suppressed_change_is_resolved(self, scripted_registry, scripted, company_field):
        # A host listener rewrites the value while the selection's change is being delivered
        def rewrite(event):
            if company_field.value == "7":
                company_field.set_value("13")

        company_field.listen("change", rewrite)
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)

        binder.select(Row(value="7", label="Globex Corporation"))
        assert binder.state is BinderState.RESOLVING_FORWARD
        await settle()

        assert [lookup.value for lookup in scripted.pending] == ["13", "13"]
        scripted.release(0)
        scripted.release(0)
        await settle()

        assert company_field.value == "13"
        assert binder.label == "Initech"
        assert binder.state is BinderState.IDLE

    @pytest.mark.asyncio
    async def test_selected_value_round_trips_through_forward_lookup(self, registry, company_field):
        binder = registry.bind(company_field, COMPANY_OPTIONS)
        await binder.drain()

        binder.select(Row(value="13", label="Initech"))
        await binder.refresh()

        assert binder.label == "Initech"


class TestFailures:
    @pytest.mark.asyncio
    async def test_failed_lookup_keeps_label_and_publishes(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)
        failures = []
        scripted_registry.event_bus.subscribe(ResolutionFailed, failures.append)

        company_field.set_value("7")
        await settle()
        scripted.fail()
        await settle()

        assert binder.label == "Acme Corp"
        assert binder.state is BinderState.IDLE
        assert len(failures) == 1
        assert failures[0].request.value == "7"
        assert isinstance(failures[0].error, ResolverError)

    @pytest.mark.asyncio
    async def test_failure_of_superseded_lookup_is_dropped(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)
        failures = []
        scripted_registry.event_bus.subscribe(ResolutionFailed, failures.append)

        company_field.set_value("7")
        await settle()
        company_field.set_value("13")
        await settle()
        scripted.fail(0)
        await settle()

        assert failures == []
        assert binder.state is BinderState.RESOLVING_FORWARD

        scripted.release()
        await settle()
        assert binder.label == "Initech"
        assert binder.state is BinderState.IDLE

    @pytest.mark.asyncio
    async def test_unexpected_resolver_exception_is_wrapped(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)
        failures = []
        scripted_registry.event_bus.subscribe(ResolutionFailed, failures.append)

        company_field.set_value("7")
        await settle()
        scripted.fail(error=RuntimeError("boom"))
        await settle()

        assert binder.label == "Acme Corp"
        assert isinstance(failures[0].error, ResolverError)
        assert "boom" in str(failures[0].error)

    @pytest.mark.asyncio
    async def test_refresh_raises_resolver_error(self, registry, company_field):
        binder = registry.bind(company_field, {"autocompleteCommand": "missing"})
        await binder.drain()
        label = binder.label

        with pytest.raises(ResolverError):
            await binder.refresh()
        assert binder.label == label


class TestFocusAndTyping:
    @pytest.mark.asyncio
    async def test_canonical_focus_moves_to_proxy(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)
        document = company_field.document

        document.focus(company_field)
        assert ACTIVE_CLASS in binder.pair.proxy.classes
        await settle()

        assert document.focused is binder.pair.proxy
        assert ACTIVE_CLASS not in binder.pair.proxy.classes

    @pytest.mark.asyncio
    async def test_keystroke_on_canonical_is_redirected_to_proxy(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)
        document = company_field.document

        document.focus(company_field)
        event = document.press_key("G")

        assert event.default_prevented
        assert company_field.value == "42"
        assert binder.pair.proxy.value == "G"
        assert document.focused is binder.pair.proxy
        assert binder.state is BinderState.USER_EDITING
        assert binder.suggestions.terms == ["G"]

    @pytest.mark.asyncio
    async def test_keystroke_on_readonly_canonical_is_swallowed(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)
        document = company_field.document
        company_field.readonly = True

        document.focus(company_field)
        document.press_key("G")

        assert company_field.value == "42"
        assert binder.label == "Acme Corp"
        assert binder.state is BinderState.IDLE

    @pytest.mark.asyncio
    async def test_typing_below_minimum_length_closes_suggestions(self, scripted, company_field):
        registry = ComboboxRegistry(resolver=scripted, suggestions_factory=FakeSuggestions)
        binder = registry.bind(company_field, {"autocompleteCommand": "companies", "minimumInputLength": 2})
        document = company_field.document

        document.focus(binder.pair.proxy)
        document.type_text("Gl", replace=True)
        document.backspace()

        assert binder.suggestions.terms == ["Gl"]
        assert binder.suggestions.close_calls == 1

    @pytest.mark.asyncio
    async def test_mouse_down_on_proxy_routes_focus_through_canonical(
        self, scripted_registry, scripted, company_field
    ):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)
        document = company_field.document
        focused = []
        company_field.listen("focus", lambda event: focused.append(event.target))

        event = document.mouse_down(binder.pair.proxy)
        assert event.default_prevented
        assert focused == [company_field]
        await settle()

        assert document.focused is binder.pair.proxy

    @pytest.mark.asyncio
    async def test_disabled_canonical_does_not_take_focus(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)
        company_field.disabled = True

        assert binder.pair.proxy.disabled
        assert company_field.document.focus(company_field) is False
        assert company_field.document.focused is None


class TestAffordances:
    @pytest.mark.asyncio
    async def test_clear_resets_to_empty_value(self, scripted_registry, scripted, company_field):
        options = {**COMPANY_OPTIONS, "allowClear": True}
        binder = await bind_resolved(scripted_registry, company_field, options, scripted)
        clear = binder.pair.clear
        assert clear.visible

        company_field.document.click(clear)
        await settle()

        assert company_field.value == "0"
        assert binder.label == "Select an item"
        assert not clear.visible
        assert company_field.document.focused is binder.pair.proxy

    @pytest.mark.asyncio
    async def test_dropdown_toggles_suggestion_list(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)
        document = company_field.document
        suggestions = binder.suggestions

        event = document.mouse_down(binder.pair.dropdown)
        assert event.default_prevented
        assert suggestions.show_all_calls == 1
        assert suggestions.is_open

        document.mouse_down(binder.pair.dropdown)
        assert suggestions.close_calls == 1
        assert not suggestions.is_open

    @pytest.mark.asyncio
    async def test_dropdown_ignored_when_readonly(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)
        company_field.readonly = True

        company_field.document.mouse_down(binder.pair.dropdown)

        assert binder.suggestions.show_all_calls == 0
        assert not binder.pair.dropdown.visible


class TestEvents:
    @pytest.mark.asyncio
    async def test_label_changes_are_published(self, scripted_registry, scripted, company_field):
        labels = []
        scripted_registry.event_bus.subscribe(LabelChanged, lambda event: labels.append(event.label))

        await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)
        company_field.set_value("")
        await settle()

        assert labels == ["Acme Corp", "Select an item"]


class TestTeardown:
    @pytest.mark.asyncio
    async def test_removed_proxy_tears_binding_down(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)
        document = company_field.document

        document.remove(binder.pair.proxy)
        company_field.set_value("7")
        await settle()

        assert binder.state is BinderState.DETACHED
        assert len(scripted.calls) == 1
        assert company_field.listener_count() == 0
        assert document.subscription_count(company_field) == 0

    @pytest.mark.asyncio
    async def test_detach_cancels_in_flight_lookup(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)

        company_field.set_value("7")
        await settle()
        scripted_registry.unbind(company_field)
        await settle()

        assert binder.state is BinderState.DETACHED
        assert binder.label == "Acme Corp"
        assert all(lookup.future.cancelled() for lookup in scripted.pending)

    @pytest.mark.asyncio
    async def test_events_after_detach_are_ignored(self, scripted_registry, scripted, company_field):
        binder = await bind_resolved(scripted_registry, company_field, COMPANY_OPTIONS, scripted)
        proxy = binder.pair.proxy
        binder.detach()

        proxy.dispatch("keypress", key="x")
        binder.select(Row(value="7", label="Globex Corporation"))
        await asyncio.sleep(0)

        assert binder.state is BinderState.DETACHED
        assert company_field.value == "42"
