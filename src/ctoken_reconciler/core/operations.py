"""Conversion of derivative operations into underlying-denominated operations."""

from collections.abc import Iterable, Sequence
from decimal import Decimal, localcontext

from ctoken_reconciler.core.models import Account, Operation, OperationType, format_rate

# Wide enough for any 256-bit balance times a normalized rate.
_CONVERSION_PRECISION = 120


def convert_amount(amount: int, rate: Decimal) -> int:
    """
    Convert a derivative amount to underlying smallest units.

    Parameters
    ----------
    amount : int
        Derivative amount in smallest units
    rate : Decimal
        Normalized exchange rate

    Returns
    -------
    int
        Underlying amount, truncated toward zero

    """
    with localcontext() as ctx:
        ctx.prec = _CONVERSION_PRECISION
        return int(Decimal(amount) * rate)


def map_operation_type(op_type: OperationType) -> OperationType | None:
    """
    Map a derivative operation type to its underlying-side meaning.

    Receiving derivative tokens means underlying was supplied to the market;
    sending them means it was redeemed.

    Parameters
    ----------
    op_type : OperationType
        Type of the derivative operation

    Returns
    -------
    OperationType | None
        Mapped type, or None when the operation has no underlying counterpart

    """
    match op_type:
        case OperationType.IN:
            return OperationType.SUPPLY
        case OperationType.OUT:
            return OperationType.REDEEM
        case _:
            return None


def remap_operations(
    target_account_id: str,
    derivative_account: Account,
    rates: Sequence[Decimal],
) -> list[Operation]:
    """
    Rewrite a derivative account's history in the underlying account's terms.

    Parameters
    ----------
    target_account_id : str
        Id of the underlying account receiving the operations
    derivative_account : Account
        Derivative account whose operations are converted
    rates : Sequence[Decimal]
        Normalized rate at the date of each operation, aligned with
        ``derivative_account.operations``

    Returns
    -------
    list[Operation]
        Converted operations; unmapped types are dropped

    Raises
    ------
    ValueError
        If rates and operations are not the same length

    """
    operations = derivative_account.operations
    if len(rates) != len(operations):
        msg = f"Expected {len(operations)} rates for {derivative_account.id}, got {len(rates)}"
        raise ValueError(msg)

    remapped = []
    for op, rate in zip(operations, rates, strict=True):
        op_type = map_operation_type(op.type)
        if op_type is None:
            continue

        remapped.append(
            op.model_copy(
                update={
                    "id": f"{target_account_id}-{op.hash}-{op_type}",
                    "type": op_type,
                    "value": convert_amount(op.value, rate),
                    "account_id": target_account_id,
                    "extra": {"compoundValue": str(op.value), "rate": format_rate(rate)},
                }
            )
        )

    return remapped


def merge_operations(existing: Iterable[Operation], new: Iterable[Operation]) -> list[Operation]:
    """
    Union two operation lists by id, most recent first.

    Parameters
    ----------
    existing : Iterable[Operation]
        Operations already on the account; kept on id collision
    new : Iterable[Operation]
        Operations to add

    Returns
    -------
    list[Operation]
        Deduplicated operations sorted by date descending

    """
    merged: dict[str, Operation] = {}
    for op in existing:
        merged.setdefault(op.id, op)
    for op in new:
        merged.setdefault(op.id, op)
    return sorted(merged.values(), key=lambda op: op.date, reverse=True)
