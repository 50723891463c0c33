from __future__ import annotations

import logging
from typing import Iterable

from django.db import transaction

from ..models import Apartment, ApartmentYearSetting, PrepaymentPeriod, Tenant
from .diagnostics import CalculationResult, WarningCode, WarningCollector
from .periods import is_valid_year, periods_overlap, validate_period, year_bounds
from .types import PrepaymentPeriodData

logger = logging.getLogger(__name__)


def period_to_data(period: PrepaymentPeriod) -> PrepaymentPeriodData:
    return PrepaymentPeriodData(
        id=period.pk,
        apartment_id=period.apartment_id,
        tenant_id=period.tenant_id,
        monthly_amount=period.monthly_amount,
        start_date=period.start_date,
        end_date=period.end_date,
    )


class PrepaymentPeriodService:
    """Persistente Vorauszahlungsperioden, immer jahresweise ersetzt.

    Eine Periode gehört zu einem Jahr, wenn sie es überlappt
    (``von <= 31.12. und bis >= 01.01.``), auch wenn sie über mehrere Jahre läuft.
    """

    @staticmethod
    def _overlapping(apartment_id: int, year: int):
        year_start, year_end = year_bounds(year)
        return PrepaymentPeriod.objects.filter(
            apartment_id=apartment_id,
            start_date__lte=year_end,
            end_date__gte=year_start,
        )

    @classmethod
    def get_for_apartment_and_year(
        cls,
        apartment_id: int,
        year: int,
    ) -> CalculationResult[list[PrepaymentPeriodData]]:
        collector = WarningCollector(logger)
        if not is_valid_year(year):
            collector.warn(
                WarningCode.YEAR_OUT_OF_RANGE,
                f"Vorauszahlungsperioden lesen: ungewöhnliches Jahr {year} - leere Liste.",
                apartment_id=apartment_id,
                year=year,
            )
            return collector.result([])

        periods = cls._overlapping(apartment_id, year).order_by("start_date", "id")
        return collector.result([period_to_data(period) for period in periods])

    @classmethod
    def clear_for_apartment_and_year(cls, apartment_id: int, year: int) -> CalculationResult[int]:
        collector = WarningCollector(logger)
        if not is_valid_year(year):
            collector.warn(
                WarningCode.YEAR_OUT_OF_RANGE,
                f"Vorauszahlungsperioden löschen: ungewöhnliches Jahr {year} - kein Delete ausgeführt.",
                apartment_id=apartment_id,
                year=year,
            )
            return collector.result(0)

        with transaction.atomic():
            deleted, _details = cls._overlapping(apartment_id, year).delete()
        return collector.result(deleted)

    @classmethod
    def replace_for_apartment_and_year(
        cls,
        apartment_id: int,
        year: int,
        new_periods: Iterable[PrepaymentPeriodData],
    ) -> CalculationResult[list[PrepaymentPeriodData]]:
        """Löscht alle Perioden, die ``year`` überlappen, und speichert die gültigen neuen.

        Delete und Insert laufen in einer Transaktion; die Wohnungszeile wird
        gesperrt, damit zwei Ersetzungen für dieselbe Wohnung nicht ineinander
        laufen. Ungültige Einträge werden übersprungen und gemeldet, ein
        unbekannter Mieter wird gemeldet und die Periode ohne Mieter gespeichert.
        """
        collector = WarningCollector(logger)
        if not is_valid_year(year):
            collector.warn(
                WarningCode.YEAR_OUT_OF_RANGE,
                f"Vorauszahlungsperioden ersetzen: ungewöhnliches Jahr {year} "
                "- keine Änderungen gespeichert.",
                apartment_id=apartment_id,
                year=year,
            )
            return collector.result([])

        candidates = list(new_periods)
        with transaction.atomic():
            saved = cls._replace_locked(apartment_id, year, candidates, collector)
        return collector.result(saved or [])

    @classmethod
    def apply_periods(
        cls,
        apartment_id: int,
        year: int,
        new_periods: Iterable[PrepaymentPeriodData],
    ) -> CalculationResult[list[PrepaymentPeriodData]]:
        """Ersetzt die Perioden und stellt die Wohnung für das Jahr auf Periodenmodus."""
        collector = WarningCollector(logger)
        if not is_valid_year(year):
            collector.warn(
                WarningCode.YEAR_OUT_OF_RANGE,
                f"Vorauszahlungsperioden übernehmen: ungewöhnliches Jahr {year} "
                "- keine Änderungen gespeichert.",
                apartment_id=apartment_id,
                year=year,
            )
            return collector.result([])

        candidates = list(new_periods)
        with transaction.atomic():
            saved = cls._replace_locked(apartment_id, year, candidates, collector)
            if saved is not None:
                cls._set_mode(apartment_id, year, ApartmentYearSetting.PrepaymentMode.PERIODS)
        return collector.result(saved or [])

    @classmethod
    def reset_to_standard(cls, apartment_id: int, year: int) -> CalculationResult[list[PrepaymentPeriodData]]:
        """Zurück auf Pauschalbetrag: Perioden des Jahres löschen, Modus ``standard``."""
        collector = WarningCollector(logger)
        if not is_valid_year(year):
            collector.warn(
                WarningCode.YEAR_OUT_OF_RANGE,
                f"Vorauszahlungs-Modus zurücksetzen: ungewöhnliches Jahr {year} "
                "- keine Änderungen gespeichert.",
                apartment_id=apartment_id,
                year=year,
            )
            return collector.result([])

        with transaction.atomic():
            if cls._replace_locked(apartment_id, year, [], collector) is not None:
                cls._set_mode(apartment_id, year, ApartmentYearSetting.PrepaymentMode.STANDARD)
        return collector.result([])

    @classmethod
    def _replace_locked(
        cls,
        apartment_id: int,
        year: int,
        candidates: list[PrepaymentPeriodData],
        collector: WarningCollector,
    ) -> list[PrepaymentPeriodData] | None:
        apartment = Apartment.objects.select_for_update().filter(pk=apartment_id).first()
        if apartment is None:
            collector.warn(
                WarningCode.UNKNOWN_APARTMENT,
                f"Vorauszahlungsperioden ersetzen: Wohnung {apartment_id} existiert nicht "
                "- keine Änderungen gespeichert.",
                apartment_id=apartment_id,
            )
            return None

        cls._overlapping(apartment_id, year).delete()

        accepted = [
            candidate
            for candidate in candidates
            if validate_period(candidate, apartment_id=apartment_id, collector=collector)
        ]
        cls._warn_overlaps(apartment_id, accepted, collector)
        known_tenants = cls._known_tenant_ids(accepted)

        saved: list[PrepaymentPeriodData] = []
        for candidate in accepted:
            tenant_id = candidate.tenant_id
            if tenant_id is not None and tenant_id not in known_tenants:
                collector.warn(
                    WarningCode.PERIOD_UNKNOWN_TENANT,
                    f"Wohnung {apartment_id}: Mieter {tenant_id} der Periode "
                    f"{candidate.start_date}–{candidate.end_date} existiert nicht "
                    "- Periode ohne Mieter gespeichert.",
                    apartment_id=apartment_id,
                    tenant_id=tenant_id,
                )
                tenant_id = None
            period = PrepaymentPeriod.objects.create(
                apartment=apartment,
                tenant_id=tenant_id,
                monthly_amount=candidate.monthly_amount,
                start_date=candidate.start_date,
                end_date=candidate.end_date,
            )
            saved.append(period_to_data(period))
        return saved

    @staticmethod
    def _known_tenant_ids(periods: list[PrepaymentPeriodData]) -> set[int]:
        requested = {period.tenant_id for period in periods if period.tenant_id is not None}
        if not requested:
            return set()
        return set(Tenant.objects.filter(pk__in=requested).values_list("pk", flat=True))

    @staticmethod
    def _warn_overlaps(
        apartment_id: int,
        periods: list[PrepaymentPeriodData],
        collector: WarningCollector,
    ) -> None:
        ordered = sorted(periods, key=lambda item: (item.start_date, item.end_date))
        for index, current in enumerate(ordered):
            for following in ordered[index + 1:]:
                if following.start_date > current.end_date:
                    break
                if periods_overlap(current, following):
                    collector.warn(
                        WarningCode.PERIOD_OVERLAP,
                        f"Wohnung {apartment_id}: Perioden überschneiden sich "
                        f"({current.start_date}–{current.end_date} und "
                        f"{following.start_date}–{following.end_date}) - beide werden summiert.",
                        apartment_id=apartment_id,
                    )

    @staticmethod
    def _set_mode(apartment_id: int, year: int, mode: str) -> None:
        setting, created = ApartmentYearSetting.objects.get_or_create(
            apartment_id=apartment_id,
            year=year,
            defaults={"prepayment_mode": mode},
        )
        if not created and setting.prepayment_mode != mode:
            setting.prepayment_mode = mode
            setting.save(update_fields=["prepayment_mode"])
