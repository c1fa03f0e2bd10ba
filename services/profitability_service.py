"""
Profitability calculations.

Margins are percentages rounded to 2 decimal places. A margin or profit
whose base is zero or negative is None ("not computable"), which is
different from a computed zero.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List

import structlog

from models.reconciliation import (
    AugmentedSkuGroup,
    ProductLineMargin,
    ProfitabilityFigures,
    ProfitabilitySummary,
)

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def compute_profitability(sdp: Decimal, srp: Decimal, cost: Decimal) -> ProfitabilityFigures:
    """
    Compute margins and unit profits for one price point.

    - sdp_margin = (sdp - cost) / sdp * 100 when sdp > 0 and cost > 0
    - srp_margin = (srp - sdp) / srp * 100 when srp > 0 and sdp > 0
    - sdp_profit / srp_profit share the guard of their margin

    Args:
        sdp: Standard dealer price
        srp: Suggested retail price
        cost: Average landing cost

    Returns:
        ProfitabilityFigures with None for anything not computable
    """
    sdp_margin = sdp_profit = srp_margin = srp_profit = None

    if sdp > 0 and cost > 0:
        sdp_profit = sdp - cost
        sdp_margin = round(sdp_profit / sdp * HUNDRED, 2)

    if srp > 0 and sdp > 0:
        srp_profit = srp - sdp
        srp_margin = round(srp_profit / srp * HUNDRED, 2)

    return ProfitabilityFigures(
        sdp_margin=sdp_margin,
        srp_margin=srp_margin,
        sdp_profit=sdp_profit,
        srp_profit=srp_profit,
    )


def _stock_weighted(group: AugmentedSkuGroup) -> bool:
    return group.on_hand_qty > 0 and group.sdp > 0 and group.sdp_profit is not None


def summarize_profitability(groups: Iterable[AugmentedSkuGroup]) -> ProfitabilitySummary:
    """
    Portfolio KPIs over reconciled SKUs.

    The weighted SDP margin weights each SKU by its on-hand units and only
    counts SKUs with stock, a dealer price and a computable profit.
    """
    groups = list(groups)

    total_value = ZERO
    total_units = 0
    profit_value = ZERO
    revenue_potential = ZERO
    by_line: Dict[str, Dict] = defaultdict(lambda: {
        "profit": ZERO,
        "revenue": ZERO,
        "count": 0,
    })

    for group in groups:
        total_value += group.on_hand_value + group.on_the_way_value
        total_units += group.on_hand_qty

        line = by_line[group.product_line or "N/A"]
        line["count"] += 1

        if _stock_weighted(group):
            profit = group.sdp_profit * group.on_hand_qty
            revenue = group.sdp * group.on_hand_qty
            profit_value += profit
            revenue_potential += revenue
            line["profit"] += profit
            line["revenue"] += revenue

    weighted_margin = (
        round(profit_value / revenue_potential * HUNDRED, 2) if revenue_potential > 0 else ZERO
    )

    line_margins: List[ProductLineMargin] = []
    for name, data in by_line.items():
        if data["revenue"] <= 0:
            continue
        margin = round(data["profit"] / data["revenue"] * HUNDRED, 2)
        if margin > 0:
            line_margins.append(ProductLineMargin(name=name, margin=margin, count=data["count"]))

    line_margins.sort(key=lambda m: (-m.margin, m.name))

    logger.info(
        "profitability_summarized",
        skus=len(groups),
        weighted_avg_sdp_margin=str(weighted_margin),
    )

    return ProfitabilitySummary(
        total_inventory_value=total_value,
        weighted_avg_sdp_margin=weighted_margin,
        total_listed_mtms=len(groups),
        total_units_in_stock=total_units,
        margin_by_product_line=line_margins,
    )
