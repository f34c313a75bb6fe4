"""Deliverability scoring over per-domain delivery counts."""

from __future__ import annotations

from typing import Any, Iterable


def health_score(deliverability_score: float, bounce_rate: float) -> int:
    """Score sender health from 0 to 100.

    Bounce rates above 5% and 10% cost 20 and a further 30 points;
    deliverability below 95% and 90% costs 10 and a further 20 points.
    """
    score = 100
    if bounce_rate > 5:
        score -= 20
    if bounce_rate > 10:
        score -= 30
    if deliverability_score < 95:
        score -= 10
    if deliverability_score < 90:
        score -= 20
    return max(0, round(score))


def summarize_deliverability(domain_metrics: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """Combine per-domain rows into overall scores.

    Args:
        domain_metrics: Rows from ``AbstractCampaignRepository.deliverability``.

    Returns:
        Dict with health_score, deliverability_score, bounce_rate and the rows.
    """
    rows = list(domain_metrics)
    total_sent = sum(r["sent"] for r in rows)
    total_delivered = sum(r["delivered"] for r in rows)
    total_bounced = sum(r["bounced"] for r in rows)

    deliverability_score = total_delivered / total_sent * 100 if total_sent else 0.0
    bounce_rate = total_bounced / total_sent * 100 if total_sent else 0.0

    return {
        "health_score": health_score(deliverability_score, bounce_rate),
        "deliverability_score": round(deliverability_score, 2),
        "bounce_rate": round(bounce_rate, 2),
        "domain_metrics": rows,
    }
