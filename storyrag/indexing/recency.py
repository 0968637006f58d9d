from __future__ import annotations

RECENCY_BOOST = 0.1


def time_decay(order: float, max_order: float) -> float:
    """
    Recency multiplier in [1.0, 1.1] for a chapter at position order.

    Later chapters tend to hold the current state of characters and plot, so
    they get a gentle boost that never outweighs a strong match.
    """
    if max_order <= 1:
        return 1.0
    recency = min(max(order, 0), max_order) / max_order
    return 1.0 + RECENCY_BOOST * recency
