"""
Campaign performance metrics.

Scalar metrics return 0 when their denominator is 0 so a campaign without
spend, impressions or clicks never raises. summarize_campaigns() computes
the same metrics column-wise over a table of campaigns.
"""

from __future__ import annotations

from typing import Any

import pandas as pd

# Input columns expected by summarize_campaigns()
METRIC_INPUT_COLUMNS = ("spent", "revenue", "impressions", "clicks", "conversions")


def calculate_roas(revenue: float, spent: float) -> float:
    """Return on ad spend: revenue / spent."""
    if spent == 0:
        return 0.0
    return revenue / spent


def calculate_cpa(spent: float, conversions: float) -> float:
    """Cost per acquisition: spent / conversions."""
    if conversions == 0:
        return 0.0
    return spent / conversions


def calculate_ctr(clicks: float, impressions: float) -> float:
    """Click-through rate in percent."""
    if impressions == 0:
        return 0.0
    return clicks / impressions * 100


def calculate_conversion_rate(conversions: float, clicks: float) -> float:
    """Conversion rate in percent of clicks."""
    if clicks == 0:
        return 0.0
    return conversions / clicks * 100


def _safe_ratio(numerator: pd.Series, denominator: pd.Series) -> pd.Series:
    """Element-wise ratio with 0 where the denominator is 0."""
    ratio = numerator / denominator.where(denominator != 0)
    return ratio.fillna(0.0)


def summarize_campaigns(
    data: pd.DataFrame | list[dict[str, Any]],
) -> pd.DataFrame:
    """
    Add performance metric columns to a table of campaigns.

    Args:
        data: Campaign rows as DataFrame or list of dicts. Missing metric
            input columns are treated as 0.

    Returns:
        Copy of the table with roas, cpa, ctr and conversion_rate columns

    Example:
        df = summarize_campaigns([
            {"campaign": "spring", "spent": 100, "revenue": 400,
             "impressions": 10000, "clicks": 200, "conversions": 10},
        ])
        df.loc[0, "roas"]  # 4.0
    """
    df = data.copy() if isinstance(data, pd.DataFrame) else pd.DataFrame(data)

    for column in METRIC_INPUT_COLUMNS:
        if column not in df.columns:
            df[column] = 0
        df[column] = pd.to_numeric(df[column], errors="coerce").fillna(0).astype(float)

    df["roas"] = _safe_ratio(df["revenue"], df["spent"])
    df["cpa"] = _safe_ratio(df["spent"], df["conversions"])
    df["ctr"] = _safe_ratio(df["clicks"], df["impressions"]) * 100
    df["conversion_rate"] = _safe_ratio(df["conversions"], df["clicks"]) * 100

    return df
