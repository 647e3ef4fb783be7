"""Domain protocols - interfaces for all implementations.

Protocols describe the contracts that collaborators of the binder must
satisfy, so tests can substitute scripted fakes and hosts can plug in their
own transports and widgets.
"""

from combofield.domain.protocols.resolver import RowResolver, SuggestionSource
from combofield.domain.protocols.suggestions import SuggestionList

__all__ = [
    "RowResolver",
    "SuggestionSource",
    "SuggestionList",
]
