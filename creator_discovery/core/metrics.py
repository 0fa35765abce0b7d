"""Aggregate metrics over a filtered creator set."""
from typing import Any, Dict, Iterable

import pandas as pd

from creator_discovery.core.normalizer import decode_change, decode_metric
from creator_discovery.models.creator import CreatorMetrics

METRIC_COLUMNS = ("followers_count", "average_views", "engagement_rate", "followers_change")


def compute_metrics(rows: Iterable[Dict[str, Any]]) -> CreatorMetrics:
    records = list(rows)
    if not records:
        return CreatorMetrics()

    frame = pd.DataFrame(
        {
            "followers": [decode_metric(row.get("followers_count"), "followers") for row in records],
            "views": [decode_metric(row.get("average_views"), "views") for row in records],
            "engagement": [decode_metric(row.get("engagement_rate"), "rate") for row in records],
            "followers_change": [decode_change(row.get("followers_change")) for row in records],
        }
    )
    means = frame.mean()
    change = round(float(means["followers_change"]), 2)
    return CreatorMetrics(
        total_creators=len(frame),
        avg_followers=int(round(float(means["followers"]))),
        avg_views=int(round(float(means["views"]))),
        avg_engagement=round(float(means["engagement"]), 2),
        change_percentage=change,
        change_type="positive" if change >= 0 else "negative",
    )
