from __future__ import annotations

import math
from typing import Any, Dict

from src.core.pnl import compute_pnl
from src.models.position import Position


def position_payload(position: Position) -> Dict[str, Any]:
    """Position JSON plus its derived PnL; an undefined percent becomes null."""
    pnl = compute_pnl(position)
    out = position.to_dict()
    out["pnl"] = {
        "percent": None if math.isnan(pnl.percent) else pnl.percent,
        "absolute": pnl.absolute,
        "effectivePrice": pnl.effective_price,
    }
    return out
