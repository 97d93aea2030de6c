"""Cooperative cancellation shared by the lookup and import phases."""

from __future__ import annotations


class CancellationToken:
    """Flag checked between phases and between items.

    Setting it stops further work; nothing already written is rolled back.
    """

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
