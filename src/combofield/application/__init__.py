"""Application layer: combobox binding, autocomplete, and value filtering."""

from combofield.application.autocomplete import AutocompleteBinder
from combofield.application.binder import ComboboxBinder
from combofield.application.filtering import FieldFilter, filter_document, filter_value, install_filters
from combofield.application.mirror import AttributeMirror
from combofield.application.registry import ComboboxRegistry
from combofield.application.sequencer import RequestSequencer

__all__ = [
    "AttributeMirror",
    "AutocompleteBinder",
    "ComboboxBinder",
    "ComboboxRegistry",
    "FieldFilter",
    "RequestSequencer",
    "filter_document",
    "filter_value",
    "install_filters",
]
