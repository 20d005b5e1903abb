"""
Payload formatting, one function per value type.
"""

from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Callable

from seriesdb.models import Dataset, ValueType

ValueFormatter = Callable[[Any, Dataset], Any]


def format_quantity(raw: Any, dataset: Dataset) -> Any:
    """Round half-up to the dataset's number of decimals, if it has one."""
    if raw is None:
        return None
    value = raw if isinstance(raw, Decimal) else Decimal(str(raw))
    scale = dataset.number_of_decimals
    if scale is None or not value.is_finite():
        return value
    with localcontext() as ctx:
        # room for every integer digit, the scale and a carry from rounding
        ctx.prec = max(ctx.prec, value.adjusted() + scale + 2)
        return value.quantize(Decimal(1).scaleb(-scale), rounding=ROUND_HALF_UP)


def format_count(raw: Any, dataset: Dataset) -> Any:
    return None if raw is None else int(raw)


def format_boolean(raw: Any, dataset: Dataset) -> Any:
    return None if raw is None else bool(raw)


def passthrough(raw: Any, dataset: Dataset) -> Any:
    return raw


FORMATTERS: dict[ValueType, ValueFormatter] = {
    ValueType.QUANTITY: format_quantity,
    ValueType.COUNT: format_count,
    ValueType.TEXT: passthrough,
    ValueType.BOOLEAN: format_boolean,
    ValueType.CATEGORY: passthrough,
    ValueType.COMPLEX: passthrough,
}
