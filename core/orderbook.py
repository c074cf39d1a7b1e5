"""Order book wall analysis (pure, no I/O)."""

from __future__ import annotations

from typing import Iterable, Sequence

from core.models.snapshot import OrderBookLevel, OrderBookSummary


def _biggest(levels: Sequence[OrderBookLevel]) -> OrderBookLevel | None:
    """Level with the largest notional; the nearest one wins ties."""
    best: OrderBookLevel | None = None
    for level in levels:
        if best is None or level.total > best.total:
            best = level
    return best


def summarize_order_book(
    bids: Iterable[tuple[float, float]],
    asks: Iterable[tuple[float, float]],
    depth: int = 10,
) -> OrderBookSummary:
    """
    Summarize the top of an order book.

    Args:
        bids: (price, size) pairs, best (highest) bid first
        asks: (price, size) pairs, best (lowest) ask first
        depth: Number of levels kept per side

    Returns:
        OrderBookSummary with the biggest notional wall on each side and
        buy_to_sell_ratio = buy wall notional / sell wall notional
        (0.0 when there is no sell wall)
    """
    top_bids = tuple(OrderBookLevel(price=p, size=s) for p, s in list(bids)[:depth])
    top_asks = tuple(OrderBookLevel(price=p, size=s) for p, s in list(asks)[:depth])

    if not top_bids and not top_asks:
        return OrderBookSummary.empty()

    buy_wall = _biggest(top_bids)
    sell_wall = _biggest(top_asks)

    ratio = 0.0
    if buy_wall is not None and sell_wall is not None and sell_wall.total > 0:
        ratio = buy_wall.total / sell_wall.total

    return OrderBookSummary(
        biggest_buy_wall=buy_wall,
        biggest_sell_wall=sell_wall,
        buy_to_sell_ratio=ratio,
        bids=top_bids,
        asks=top_asks,
    )
