"""Request sequencing for last-issued-wins response handling."""

__all__ = ["RequestSequencer"]


class RequestSequencer:
    """Monotonic counter identifying the most recently issued request.

    A response is applied only when the sequence number captured at issue
    time still equals ``current()``; every earlier in-flight response is
    dropped, whatever order the responses complete in.

    Example:
        >>> seq = RequestSequencer()
        >>> first = seq.next()
        >>> second = seq.next()
        >>> seq.is_current(first), seq.is_current(second)
        (False, True)
    """

    WRAP_AT = 99_999_999

    def __init__(self, wrap_at: int = WRAP_AT):
        if wrap_at < 2:
            raise ValueError("wrap_at must be at least 2")
        self._wrap_at = wrap_at
        self._current = 0

    def next(self) -> int:
        """Issue a new sequence number, wrapping to 0 at the cap."""
        self._current += 1
        if self._current >= self._wrap_at:
            self._current = 0
        return self._current

    def current(self) -> int:
        return self._current

    def is_current(self, sequence: int) -> bool:
        return sequence == self._current
