"""Position source interface (port) for live GPS fixes."""

from __future__ import annotations

from typing import AsyncIterator, Protocol, TYPE_CHECKING, Union

if TYPE_CHECKING:
    from velotrack.core.models import RoutePoint
    from velotrack.errors import PositionFixError

    PositionEvent = Union[RoutePoint, PositionFixError]


class PositionSource(Protocol):
    """Port: delivers fixes (or transient fix errors) in arrival order.

    ``events()`` is lazy and unbounded; it ends only after ``close()``.
    A source is not restartable, each ride subscribes a fresh one.
    """

    @property
    def available(self) -> bool: ...

    @property
    def closed(self) -> bool: ...

    def push(self, event: PositionEvent) -> None: ...

    def qsize(self) -> int: ...

    def events(self) -> AsyncIterator[PositionEvent]: ...

    def close(self) -> None: ...
