"""
Declarative value filtering for text fields.

A field opts in by carrying one or more filter classes:

- ``trim``: strip surrounding whitespace
- ``upper`` / ``lower``: change case (both together cancel out)
- ``date`` / ``datetime``: reformat as ``YYYY-MM-DD`` / ``YYYY-MM-DD HH:MM:SS``;
  text that is not a date becomes empty
- ``numeric-scale0`` .. ``numeric-scale10``: fixed-point number with that many
  decimals; text that is not a number becomes zero
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Callable, Iterable

from combofield.domain.document import FormDocument, Subscription
from combofield.domain.fields import FieldEvent, FormField
from combofield.logger import get_logger

logger = get_logger("filtering")

__all__ = [
    "FILTER_CLASSES",
    "FieldFilter",
    "filter_value",
    "filter_document",
    "install_filters",
    "parse_datetime",
    "format_numeric",
]

MAX_SCALE = 10
NUMERIC_CLASSES = tuple(f"numeric-scale{scale}" for scale in range(MAX_SCALE + 1))
FILTER_CLASSES = frozenset(("trim", "upper", "lower", "date", "datetime", *NUMERIC_CLASSES))

_DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%B %d, %Y",
)

_RELATIVE_DAYS = {"today": 0, "tomorrow": 1, "yesterday": -1}


def parse_datetime(text: str) -> datetime | None:
    """Parse common date/time notations; None when the text is not a date."""
    text = " ".join(text.split())
    if not text:
        return None
    lowered = text.lower()
    if lowered == "now":
        return datetime.now().replace(microsecond=0)
    if lowered in _RELATIVE_DAYS:
        day = date.today() + timedelta(days=_RELATIVE_DAYS[lowered])
        return datetime(day.year, day.month, day.day)
    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def format_numeric(text: str, scale: int) -> str:
    """Render ``text`` as a fixed-point number with ``scale`` decimals (halves round away from zero)."""
    try:
        number = float(text.strip()) if text.strip() else 0.0
    except ValueError:
        number = 0.0
    if not math.isfinite(number) or number == 0:
        number = 0.0
    with localcontext() as ctx:
        ctx.prec = 400
        quantized = Decimal(number).quantize(Decimal(1).scaleb(-scale), rounding=ROUND_HALF_UP)
    return format(quantized, "f")


def filter_value(value: str, flags: Iterable[str]) -> str:
    """Apply every filter named in ``flags`` to ``value``."""
    flags = set(flags)
    if "trim" in flags:
        value = value.strip()

    upper, lower = "upper" in flags, "lower" in flags
    if upper and not lower:
        value = value.upper()
    elif lower and not upper:
        value = value.lower()

    if "datetime" in flags:
        parsed = parse_datetime(value)
        value = parsed.strftime("%Y-%m-%d %H:%M:%S") if parsed else ""
    elif "date" in flags:
        parsed = parse_datetime(value)
        value = parsed.strftime("%Y-%m-%d") if parsed else ""

    for scale, name in enumerate(NUMERIC_CLASSES):
        if name in flags:
            value = format_numeric(value, scale)
            break

    return value


def is_filterable(field: FormField) -> bool:
    return bool(field.classes & FILTER_CLASSES) and "combobox-search" not in field.classes


class FieldFilter:
    """Keeps one field's value filtered.

    The value is filtered when the field gains or loses focus, on change, and
    whenever it is assigned while the field does not have focus.
    """

    def __init__(self, field: FormField):
        self.field = field
        self._removers: list[Callable[[], None]] = []
        self._subscription: Subscription | None = None
        self._applying = False

    def attach(self) -> "FieldFilter":
        for event_type in ("focus", "blur", "change"):
            self._removers.append(self.field.listen(event_type, self._on_event))
        if self.field.document is not None:
            self._subscription = self.field.document.watch(self.field, ("value",), self._value_assigned)
        self.apply()
        return self

    def detach(self) -> None:
        for remove in self._removers:
            remove()
        self._removers.clear()
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    def apply(self) -> bool:
        """Filter the current value; True when it changed."""
        original = self.field.value
        filtered = filter_value(original, self.field.classes)
        if filtered == original:
            return False
        self._applying = True
        try:
            self.field.value = filtered
        finally:
            self._applying = False
        logger.debug(f"Filtered field {self.field.name!r}: {original!r} -> {filtered!r}")
        return True

    def _on_event(self, event: FieldEvent) -> None:
        self.apply()

    def _value_assigned(self, name: str, old: object, new: object) -> None:
        if self._applying or self.field.has_focus:
            return
        self.apply()


def install_filters(document: FormDocument) -> list[FieldFilter]:
    """Attach a FieldFilter to every filterable field of a document."""
    filters = [
        FieldFilter(node).attach()
        for node in document.nodes
        if isinstance(node, FormField) and is_filterable(node)
    ]
    logger.debug(f"Installed {len(filters)} field filter(s)")
    return filters


def filter_document(document: FormDocument) -> int:
    """Filter every filterable field once; returns how many values changed."""
    changed = 0
    for node in document.nodes:
        if isinstance(node, FormField) and is_filterable(node):
            filtered = filter_value(node.value, node.classes)
            if filtered != node.value:
                node.value = filtered
                changed += 1
    return changed
