"""
Movement polarity rules for the stock ledger.

Inbound types add to on-hand, outbound types subtract. ADJUSTMENT has no
fixed polarity: its sign comes from comparing the before/after snapshots.
"""
from apps.utils.exceptions import InvalidInput
from .models import MovementType

INBOUND_TYPES = frozenset({
    MovementType.RECEIPT,
    MovementType.TRANSFER_IN,
    MovementType.RETURN,
})

OUTBOUND_TYPES = frozenset({
    MovementType.SHIPMENT,
    MovementType.TRANSFER_OUT,
    MovementType.DAMAGE,
})


def polarity(movement_type):
    """+1 for inbound, -1 for outbound, None for ADJUSTMENT."""
    if movement_type in INBOUND_TYPES:
        return 1
    if movement_type in OUTBOUND_TYPES:
        return -1
    if movement_type == MovementType.ADJUSTMENT:
        return None
    raise InvalidInput(f"Unknown movement type: {movement_type}")


def is_inbound(movement_type):
    return polarity(movement_type) == 1


def is_outbound(movement_type):
    return polarity(movement_type) == -1


def signed_delta(movement_type, quantity, quantity_before=None, quantity_after=None):
    sign = polarity(movement_type)
    if sign is None:
        if quantity_before is None or quantity_after is None:
            raise InvalidInput("ADJUSTMENT needs before/after snapshots to derive its sign.")
        return quantity_after - quantity_before
    return sign * quantity


def apply(movement_type, quantity_before, quantity):
    """On-hand after applying a typed movement of `quantity` units."""
    if movement_type == MovementType.ADJUSTMENT:
        raise InvalidInput("ADJUSTMENT sets an absolute quantity; use adjust_stock.")
    if quantity < 0:
        raise InvalidInput("Movement quantity must be non-negative.")
    return quantity_before + signed_delta(movement_type, quantity)


def check_entry(movement_type, quantity, quantity_before, quantity_after):
    """Raise InvalidInput unless the snapshot pair agrees with the type."""
    if quantity < 0:
        raise InvalidInput("Movement quantity must be non-negative.")

    if movement_type == MovementType.ADJUSTMENT:
        if abs(quantity_after - quantity_before) != quantity:
            raise InvalidInput(
                f"ADJUSTMENT {quantity_before}->{quantity_after} does not match quantity {quantity}."
            )
        return

    expected = quantity_before + signed_delta(movement_type, quantity)
    if quantity_after != expected:
        raise InvalidInput(
            f"{movement_type} of {quantity} from {quantity_before} should end at {expected}, "
            f"not {quantity_after}."
        )
