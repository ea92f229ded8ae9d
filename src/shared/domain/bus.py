"""Contracts between the outbox publisher and the event handlers.

Handlers run after the originating transaction committed, so a handler
never sees an event whose row was rolled back.
"""

from __future__ import annotations

from typing import Generic, Protocol, Type, TypeVar

from shared.domain.events import DomainEvent

E = TypeVar("E", bound=DomainEvent, contravariant=True)


class IEventHandler(Protocol, Generic[E]):
    def handle(self, event: E) -> None: ...


class IEventBus(Protocol):
    def publish(self, event: DomainEvent) -> int:
        """Dispatch ``event`` to its subscribers; returns how many ran.

        The first handler error propagates and stops the dispatch.
        """
        ...

    def subscribe(self, event_class: Type[E], handler: IEventHandler[E]) -> None: ...

    def unsubscribe(self, event_class: Type[E], handler: IEventHandler[E]) -> None: ...
