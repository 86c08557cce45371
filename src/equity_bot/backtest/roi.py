"""Minimal-ROI table: required profit by holding duration."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

RoiTable = dict[float, float]


def parse_roi_table(raw: Any) -> RoiTable:
    """Accept a JSON object string or a mapping of minutes -> profit fraction.

    Invalid input yields an empty table, which never triggers an exit.
    """
    if raw is None:
        return {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Failed to parse ROI table JSON %r, using empty table", raw)
            return {}
    if not isinstance(raw, Mapping):
        logger.warning("ROI table is not a mapping (%r), using empty table", raw)
        return {}

    table: RoiTable = {}
    for key, value in raw.items():
        try:
            table[float(key)] = float(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring ROI table entry %r: %r", key, value)
    return dict(sorted(table.items()))


def get_roi_threshold(table: Mapping[float, float], elapsed_minutes: float) -> Optional[float]:
    threshold: Optional[float] = None
    for minutes in sorted(table):
        if minutes > elapsed_minutes:
            break
        threshold = table[minutes]
    return threshold


def should_exit_by_roi(table: Mapping[float, float], elapsed_minutes: float, profit: float) -> bool:
    threshold = get_roi_threshold(table, elapsed_minutes)
    if threshold is None:
        return False
    return profit >= threshold
