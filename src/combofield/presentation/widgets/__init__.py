"""Textual widgets for combobox fields."""

from .combobox import ComboboxField
from .suggestions import ComboboxSuggestions

__all__ = ["ComboboxField", "ComboboxSuggestions"]
