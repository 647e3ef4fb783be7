"""Exception hierarchy for combobox binding and resolution."""

__all__ = [
    "ComboboxError",
    "BindingConfigError",
    "BindingTargetError",
    "ResolverError",
]


class ComboboxError(Exception):
    """Base class for all combofield errors."""


class BindingConfigError(ComboboxError):
    """Raised at bind time when the binding configuration is invalid.

    Binding refuses to attach and performs no mutation when this is raised.
    """


class BindingTargetError(ComboboxError):
    """Raised when a bind/unbind target does not resolve to exactly one attached field."""


class ResolverError(ComboboxError):
    """Raised by a row resolver when the lookup outcome is unknown.

    Transport failures, HTTP error statuses and malformed responses all map here.
    A zero-row result is NOT an error; resolvers return None for it.
    """

    def __init__(self, message: str, *, command: str | None = None, column: str | None = None):
        super().__init__(message)
        self.command = command
        self.column = column
