"""Attribute mirroring between the canonical and proxy fields of a pair."""

from combofield.domain.fields import FieldPair
from combofield.domain.types import is_empty_identifier
from combofield.logger import get_logger

logger = get_logger("mirror")

__all__ = ["AttributeMirror", "HAS_CLEAR_CLASS"]

HAS_CLEAR_CLASS = "has-clear"


class AttributeMirror:
    """Keeps read-only/disabled state and affordance visibility consistent.

    The canonical field is the source of truth; the proxy and affordances follow it.
    """

    def __init__(self, pair: FieldPair, *, allow_clear: bool, id_is_string: bool):
        self._pair = pair
        self._allow_clear = allow_clear
        self._id_is_string = id_is_string

    def sync(self) -> None:
        """Copy read-only/disabled state to the proxy and recompute affordances."""
        canonical, proxy = self._pair.canonical, self._pair.proxy
        if proxy.readonly != canonical.readonly:
            proxy.readonly = canonical.readonly
        if proxy.disabled != canonical.disabled:
            proxy.disabled = canonical.disabled
        self.update_affordances()

    def update_affordances(self) -> None:
        canonical = self._pair.canonical
        editable = canonical.editable

        clear = self._pair.clear
        if clear is not None:
            show = (
                self._allow_clear
                and editable
                and not is_empty_identifier(canonical.value, self._id_is_string)
            )
            if clear.visible != show:
                clear.visible = show
                logger.debug(f"Clear affordance of pair {self._pair.correlation_id} visible={show}")
            if show:
                self._pair.proxy.classes.add(HAS_CLEAR_CLASS)
            else:
                self._pair.proxy.classes.discard(HAS_CLEAR_CLASS)

        if self._pair.dropdown.visible != editable:
            self._pair.dropdown.visible = editable
