from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from .diagnostics import CalculationResult, WarningCode, WarningCollector
from .periods import (
    MAX_PERIOD_MONTHS,
    PeriodLike,
    clip_to_year,
    inclusive_month_count,
    is_valid_year,
)
from .rounding import CENT

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = Decimal("12")


class PrepaymentReconciler:
    """Ermittelt die Vorauszahlungssumme einer Wohnung für ein Kalenderjahr.

    Ohne Perioden gilt der hinterlegte Jahresbetrag, anteilig nach bewohnten
    Monaten. Mit Perioden wird jede Periode auf das Jahr zugeschnitten und
    ``Monatsbetrag x Monate`` aufsummiert; fehlerhafte Perioden werden
    übersprungen und als Warnung gemeldet.
    """

    @classmethod
    def reconcile(
        cls,
        *,
        periods: Iterable[PeriodLike] | None,
        year: int,
        fallback_annual_amount: Decimal | None,
        occupancy_months: int,
    ) -> CalculationResult[Decimal]:
        collector = WarningCollector(logger)

        if not is_valid_year(year):
            collector.warn(
                WarningCode.YEAR_OUT_OF_RANGE,
                f"Vorauszahlung: ungewöhnliches Jahr {year} - 0 als Vorauszahlung.",
                year=year,
            )
            return collector.result(Decimal("0"))

        period_list = list(periods or [])
        if not period_list:
            return collector.result(
                cls._prorated_annual_amount(fallback_annual_amount, occupancy_months)
            )

        total = Decimal("0")
        for period in period_list:
            clipped = clip_to_year(period.start_date, period.end_date, year)
            if clipped is None:
                # Periode liegt komplett außerhalb des Jahres
                continue

            months = inclusive_month_count(*clipped)
            if months <= 0 or months > MAX_PERIOD_MONTHS:
                collector.warn(
                    WarningCode.PERIOD_MONTHS_OUT_OF_RANGE,
                    f"Vorauszahlung: ignorierte Periode ({period.start_date}–{period.end_date}) "
                    f"mit {months} Monaten.",
                    apartment_id=period.apartment_id,
                    months=months,
                )
                continue

            if period.monthly_amount < Decimal("0"):
                collector.warn(
                    WarningCode.PERIOD_NEGATIVE_AMOUNT,
                    f"Vorauszahlung: negativer Monatsbetrag {period.monthly_amount} "
                    f"für Wohnung {period.apartment_id} - Periode ignoriert.",
                    apartment_id=period.apartment_id,
                    monthly_amount=period.monthly_amount,
                )
                continue

            total += Decimal(period.monthly_amount) * months

        return collector.result(total)

    @staticmethod
    def _prorated_annual_amount(annual_amount: Decimal | None, occupancy_months: int) -> Decimal:
        if occupancy_months <= 0:
            return Decimal("0.00")
        amount = Decimal(annual_amount or Decimal("0"))
        return (amount * occupancy_months / MONTHS_PER_YEAR).quantize(CENT, rounding=ROUND_HALF_UP)
