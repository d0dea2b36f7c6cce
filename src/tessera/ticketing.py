"""
Argument builders for the ticketing contract's write entry points.

Each builder turns form-level input (free text, a date, a display price) into
the ordered typed arguments the contract function expects. Reading contract
state back (events, tickets) is not supported here.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Union

from .pneuma.scval import (
    Address,
    DateLike,
    TypedValue,
    U32,
    encode_amount,
    encode_symbol,
    encode_timestamp,
)

INITIALIZE = "initialize"
CREATE_EVENT = "create_event"
PURCHASE_TICKET = "purchase_ticket"
TRANSFER_TICKET = "transfer_ticket"


def initialize_args() -> list[TypedValue]:
    return []


def event_fields(
    name: str,
    description: str,
    date: DateLike,
    total_tickets: int,
    price: Union[float, int, str, Decimal],
) -> list[TypedValue]:
    """Everything ``create_event`` takes after the organizer, encoded."""
    return [
        encode_symbol(name),
        encode_symbol(description),
        encode_timestamp(date),
        U32(total_tickets),
        encode_amount(price),
    ]


def create_event_args(
    organizer: str,
    name: str,
    description: str,
    date: DateLike,
    total_tickets: int,
    price: Union[float, int, str, Decimal],
) -> list[TypedValue]:
    """
    Arguments for ``create_event(organizer, name, description, date,
    total_tickets, price)``.

    ``name`` and ``description`` are squeezed into 9-character symbols, so
    long or punctuated text is truncated and normalized. ``price`` is in
    display units and floored to base units.
    """
    return [Address(organizer), *event_fields(name, description, date, total_tickets, price)]


def purchase_ticket_args(buyer: str, event_id: int) -> list[TypedValue]:
    return [Address(buyer), U32(event_id)]


def transfer_ticket_args(sender: str, recipient: str, ticket_id: int) -> list[TypedValue]:
    return [Address(sender), Address(recipient), U32(ticket_id)]
