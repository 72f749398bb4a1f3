"""
ingestion/normalizer.py

Canonical numeric reading of raw cell content.

Spreadsheets mix real numbers, numeric text and shorthand such as
``"12.5k"`` lines of code. The lenient path turns anything unreadable into
0 and never raises. A normalizer built with a ``warnings`` list records
every value it had to degrade; ``strict=True`` raises instead.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from numbers import Real
from typing import Any

from ingestion.errors import ValueNormalizationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizationWarning:
    """
    One raw value that could not be read as a number and was replaced by 0.
    """

    field: str | None
    raw: Any
    reason: str


class ValueNormalizer:
    """
    Converts raw cell values into numbers.

    Parameters
    ----------
    strict:
        Raise :class:`ValueNormalizationError` for unreadable values instead
        of returning 0.
    warnings:
        Optional list that receives a :class:`NormalizationWarning` for every
        degraded value.
    """

    def __init__(
        self,
        *,
        strict: bool = False,
        warnings: list[NormalizationWarning] | None = None,
    ) -> None:
        self._strict = strict
        self._warnings = warnings

    @property
    def strict(self) -> bool:
        return self._strict

    def normalize(self, raw: Any, *, field: str | None = None) -> float | int:
        if raw is None:
            return 0
        if isinstance(raw, bool):
            return self._degrade(field, raw, "boolean is not a numeric value")
        if isinstance(raw, Real):
            if isinstance(raw, float) and not math.isfinite(raw):
                return self._degrade(field, raw, "not a finite number")
            return raw

        text = str(raw).strip()
        if not text:
            return 0

        multiplier = 1
        if text[-1] in ("k", "K"):
            text = text[:-1].strip()
            multiplier = 1000

        try:
            value = float(text)
        except ValueError:
            return self._degrade(field, raw, "not a number")
        if not math.isfinite(value * multiplier):
            return self._degrade(field, raw, "not a finite number")
        return value * multiplier

    def _degrade(self, field: str | None, raw: Any, reason: str) -> int:
        if self._strict:
            raise ValueNormalizationError(field=field, raw=raw, reason=reason)
        if self._warnings is not None:
            self._warnings.append(NormalizationWarning(field=field, raw=raw, reason=reason))
        logger.debug("Normalized unreadable value to 0 field=%s raw=%r reason=%s", field, raw, reason)
        return 0


_LENIENT = ValueNormalizer()


def normalize_numeric(raw: Any) -> float | int:
    """
    Lenient normalization: blanks and unreadable values become 0.

    >>> normalize_numeric("3.5K")
    3500.0
    """

    return _LENIENT.normalize(raw)
