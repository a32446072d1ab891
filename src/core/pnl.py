from __future__ import annotations

import math

from src.models.position import Position
from src.models.results import PnL


def compute_pnl(position: Position) -> PnL:
    """PnL against the last observed price, or zero if none was observed.

    ``percent`` is NaN when ``entry_price`` is 0; it is never raised as an error.
    """
    effective = position.current_price if position.current_price is not None else position.entry_price
    delta = effective - position.entry_price

    if position.entry_price == 0:
        percent = math.nan
    else:
        percent = delta / position.entry_price * 100

    return PnL(percent=percent, absolute=delta * position.quantity, effective_price=effective)
