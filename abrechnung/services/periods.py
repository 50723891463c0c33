"""Kalenderlogik für Vorauszahlungsperioden.

Perioden sind monatsgenau: Ein Zeitraum innerhalb desselben Kalendermonats
zählt als ein Monat, Tage werden ignoriert. Die Regeln hier werden sowohl beim
Abgleich der Vorauszahlungen als auch beim Speichern neuer Perioden verwendet.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Protocol

from .diagnostics import WarningCode, WarningCollector
from .rounding import quantize_cent

MIN_YEAR = 1900
MAX_YEAR = 2100
MAX_PERIOD_MONTHS = 240


class PeriodLike(Protocol):
    apartment_id: int
    monthly_amount: Decimal
    start_date: date
    end_date: date


def is_valid_year(year: int) -> bool:
    return MIN_YEAR <= year <= MAX_YEAR


def year_bounds(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def inclusive_month_count(start: date, end: date) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month) + 1


def clip_to_year(start: date, end: date, year: int) -> tuple[date, date] | None:
    year_start, year_end = year_bounds(year)
    clipped_start = max(start, year_start)
    clipped_end = min(end, year_end)
    if clipped_end < clipped_start:
        return None
    return clipped_start, clipped_end


def overlaps_year(start: date, end: date, year: int) -> bool:
    year_start, year_end = year_bounds(year)
    return start <= year_end and end >= year_start


def periods_overlap(first: PeriodLike, second: PeriodLike) -> bool:
    return first.start_date <= second.end_date and second.start_date <= first.end_date


def validate_period(
    period: PeriodLike,
    *,
    apartment_id: int,
    collector: WarningCollector,
) -> bool:
    if period.apartment_id != apartment_id:
        collector.warn(
            WarningCode.PERIOD_APARTMENT_MISMATCH,
            f"Periode mit abweichender Wohnung ({period.apartment_id} != {apartment_id}) "
            "- Eintrag übersprungen.",
            apartment_id=apartment_id,
            period_apartment_id=period.apartment_id,
        )
        return False

    if period.end_date < period.start_date:
        collector.warn(
            WarningCode.PERIOD_END_BEFORE_START,
            f"Periode mit Ende vor Beginn ({period.start_date}–{period.end_date}) "
            "- Eintrag übersprungen.",
            apartment_id=apartment_id,
            start_date=period.start_date,
            end_date=period.end_date,
        )
        return False

    months = inclusive_month_count(period.start_date, period.end_date)
    if months <= 0 or months > MAX_PERIOD_MONTHS:
        collector.warn(
            WarningCode.PERIOD_MONTHS_OUT_OF_RANGE,
            f"Periode mit {months} Monaten ({period.start_date}–{period.end_date}) "
            "- Eintrag übersprungen.",
            apartment_id=apartment_id,
            months=months,
        )
        return False

    if period.monthly_amount < Decimal("0"):
        collector.warn(
            WarningCode.PERIOD_NEGATIVE_AMOUNT,
            f"Negativer Monatsbetrag {period.monthly_amount} für Wohnung {apartment_id} "
            "- Eintrag übersprungen.",
            apartment_id=apartment_id,
            monthly_amount=period.monthly_amount,
        )
        return False

    # Gespeichert wird auf Cent genau; genauere Beträge würden stillschweigend gerundet
    if quantize_cent(period.monthly_amount) != period.monthly_amount:
        collector.warn(
            WarningCode.PERIOD_SUB_CENT_AMOUNT,
            f"Monatsbetrag {period.monthly_amount} für Wohnung {apartment_id} hat mehr als zwei "
            "Nachkommastellen - Eintrag übersprungen.",
            apartment_id=apartment_id,
            monthly_amount=period.monthly_amount,
        )
        return False

    return True
