"""combofield - combobox fields that resolve identifiers to labels."""

from combofield.application import AutocompleteBinder, ComboboxBinder, ComboboxRegistry
from combofield.domain.config import BindingConfig
from combofield.domain.document import FormDocument
from combofield.domain.fields import FormField

__version__ = "0.1.0"

__all__ = [
    "AutocompleteBinder",
    "BindingConfig",
    "ComboboxBinder",
    "ComboboxRegistry",
    "FormDocument",
    "FormField",
]
