"""Converters between Snapshot models and the JSON wire format.

The wire format is shared by the pull (REST) and push (WebSocket) surfaces:

- prices and indicator values: fixed 4-decimal strings ("245.8600")
- volumes: thousands with one decimal and a "k" suffix ("123.4k")
- timestamps: integer epoch milliseconds
- enum values: their display labels ("Above", "Bullish", "Hammer")

Parsing back is lossy only by that formatting; fewer than five recent
volumes come back padded with zeros.
"""

from __future__ import annotations

from typing import Any

from core.models.snapshot import (
    BollingerBands,
    CandlePattern,
    HtfTrends,
    IndicatorSet,
    OrderBookLevel,
    OrderBookSummary,
    ParabolicSar,
    PatternEvent,
    PricePosition,
    Snapshot,
    TrendBias,
    VolumeSummary,
)

PRICE_DECIMALS = 4
RATIO_DECIMALS = 3
VOLUME_SLOTS = 5


# =============================================================================
# Scalar formatting
# =============================================================================

def format_price(value: float) -> str:
    """Format a price or indicator value as a fixed 4-decimal string."""
    return f"{value:.{PRICE_DECIMALS}f}"


def format_volume(value: float) -> str:
    """Format a volume as thousands with one decimal, e.g. 123456 -> "123.5k"."""
    return f"{value / 1000:.1f}k"


def parse_volume(text: str) -> float:
    """Parse a "123.5k" volume string back to units."""
    return float(text.rstrip("k")) * 1000


# =============================================================================
# Snapshot -> wire
# =============================================================================

def _level_to_wire(level: OrderBookLevel | None) -> dict[str, str]:
    if level is None:
        return {"price": format_price(0), "size": "0.0", "total": "0.00"}
    return {
        "price": format_price(level.price),
        "size": f"{level.size:.1f}",
        "total": f"{level.total:.2f}",
    }


def _volumes_to_wire(volumes: VolumeSummary) -> dict[str, str]:
    wire = {}
    for i in range(VOLUME_SLOTS):
        value = volumes.recent[i] if i < len(volumes.recent) else 0.0
        wire[f"v{i + 1}"] = format_volume(value)
    wire["averageVolume"] = format_volume(volumes.average)
    return wire


def snapshot_to_wire(snapshot: Snapshot) -> dict[str, Any]:
    """Convert a Snapshot to the JSON-ready wire dict."""
    ind = snapshot.indicators
    book = snapshot.order_book
    htf = snapshot.htf_trends

    return {
        "currentPrice": format_price(snapshot.current_price),
        "indicators": {
            "ema7": format_price(ind.ema7),
            "ema25": format_price(ind.ema25),
            "ema99": format_price(ind.ema99),
            "atr14": format_price(ind.atr14),
            "bollinger": {
                "upper": format_price(ind.bollinger.upper),
                "middle": format_price(ind.bollinger.middle),
                "lower": format_price(ind.bollinger.lower),
            },
            "psar": {
                "value": format_price(ind.psar.value),
                "position": ind.psar.position.value,
            },
        },
        "volumes": _volumes_to_wire(snapshot.volumes),
        "patterns": [
            {
                "pattern": p.pattern.value,
                "timeWindow": p.time_window,
                "date": p.date,
                "timestamp": p.timestamp,
            }
            for p in snapshot.patterns
        ],
        "orderBook": {
            "biggestBuyWall": _level_to_wire(book.biggest_buy_wall),
            "biggestSellWall": _level_to_wire(book.biggest_sell_wall),
            "buyToSellRatio": f"{book.buy_to_sell_ratio:.{RATIO_DECIMALS}f}",
            "top10Bids": [_level_to_wire(level) for level in book.bids],
            "top10Asks": [_level_to_wire(level) for level in book.asks],
        },
        "htfTrends": {
            "h1Trend": htf.h1_trend.value,
            "h1Position": htf.h1_position.value,
            "h4Trend": htf.h4_trend.value,
            "h4Position": htf.h4_position.value,
        },
        "timestamp": snapshot.timestamp,
        "symbol": snapshot.symbol,
    }


# =============================================================================
# wire -> Snapshot
# =============================================================================

def _level_from_wire(data: dict[str, str]) -> OrderBookLevel | None:
    price = float(data["price"])
    size = float(data["size"])
    if price == 0 and size == 0:
        return None
    return OrderBookLevel(price=price, size=size)


def snapshot_from_wire(data: dict[str, Any]) -> Snapshot:
    """Parse a wire dict (as produced by snapshot_to_wire) into a Snapshot."""
    ind = data["indicators"]
    vol = data["volumes"]
    book = data["orderBook"]
    htf = data["htfTrends"]

    # The wire always carries VOLUME_SLOTS volumes; zero is a real value
    recent = tuple(parse_volume(vol[f"v{i + 1}"]) for i in range(VOLUME_SLOTS))

    return Snapshot(
        symbol=data["symbol"],
        current_price=float(data["currentPrice"]),
        indicators=IndicatorSet(
            ema7=float(ind["ema7"]),
            ema25=float(ind["ema25"]),
            ema99=float(ind["ema99"]),
            atr14=float(ind["atr14"]),
            bollinger=BollingerBands(
                upper=float(ind["bollinger"]["upper"]),
                middle=float(ind["bollinger"]["middle"]),
                lower=float(ind["bollinger"]["lower"]),
            ),
            psar=ParabolicSar(
                value=float(ind["psar"]["value"]),
                position=PricePosition(ind["psar"]["position"]),
            ),
        ),
        volumes=VolumeSummary(recent=recent, average=parse_volume(vol["averageVolume"])),
        patterns=tuple(
            PatternEvent(
                pattern=CandlePattern(p["pattern"]),
                time_window=p["timeWindow"],
                date=p["date"],
                timestamp=int(p["timestamp"]),
            )
            for p in data["patterns"]
        ),
        order_book=OrderBookSummary(
            biggest_buy_wall=_level_from_wire(book["biggestBuyWall"]),
            biggest_sell_wall=_level_from_wire(book["biggestSellWall"]),
            buy_to_sell_ratio=float(book["buyToSellRatio"]),
            bids=tuple(
                lvl for lvl in (_level_from_wire(b) for b in book["top10Bids"]) if lvl
            ),
            asks=tuple(
                lvl for lvl in (_level_from_wire(a) for a in book["top10Asks"]) if lvl
            ),
        ),
        htf_trends=HtfTrends(
            h1_trend=TrendBias(htf["h1Trend"]),
            h1_position=PricePosition(htf["h1Position"]),
            h4_trend=TrendBias(htf["h4Trend"]),
            h4_position=PricePosition(htf["h4Position"]),
        ),
        timestamp=int(data["timestamp"]),
    )
