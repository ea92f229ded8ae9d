"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.
"""

from __future__ import annotations


class NotAuthenticated(Exception):
    """No caller identity was supplied."""

    default_message = "You must be logged in to perform this action."

    def __init__(self, message: str = default_message) -> None:
        super().__init__(message)


class EmailNotVerified(Exception):
    """An authenticated caller has not verified their email yet."""

    default_message = "Please verify your email before placing an order."

    def __init__(self, message: str = default_message) -> None:
        super().__init__(message)


class OrderNotFound(Exception):
    """The requested order does not exist."""


class InvalidOrderStatus(Exception):
    """A transition out of the terminal ``Cancelled`` state was attempted."""


class ProductNotFound(Exception):
    """A product referenced by an order item does not exist."""


class ProductUnavailable(Exception):
    """A product referenced by an order item is not published."""


class InsufficientStock(Exception):
    """Not enough stock to fulfil an order item."""


class OrderNumberExhausted(Exception):
    """No unique order number could be generated within the retry budget."""
