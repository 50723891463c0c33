from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Mapping, Sequence

from .diagnostics import CalculationResult, WarningCode, WarningCollector
from .periods import MAX_YEAR, MIN_YEAR, is_valid_year
from .prepayment_service import PrepaymentReconciler
from .rounding import quantize_ratio6, round_to_whole_currency_unit
from .types import (
    AllocationResult,
    ApartmentData,
    CostTypeData,
    PrepaymentPeriodData,
    TenantData,
)

logger = logging.getLogger(__name__)

DEFAULT_MONTHS = 12
DEFAULT_VACANCY_LABEL = "Leerstand"


class AllocationService:
    """Betriebskostenumlage nach Wohnfläche x Monaten.

    - Einheiten = Wohnfläche * Monate (Monate auf 0..12 begrenzt)
    - Kosten je Einheit = Summe Kostenarten / Summe Einheiten (6 Nachkommastellen)
    - Umlage je Wohnung = Kosten je Einheit * Einheiten, auf volle Euro
    - Ergebnis = Vorauszahlung - Umlage (positiv = Guthaben, negativ = Nachzahlung)

    Bei unbrauchbaren Eingaben (keine Wohnungen, keine Kostenarten, Jahr
    außerhalb 1900..2100, keine Einheiten) bleibt das Ergebnis leer und es
    wird eine Warnung geliefert. Mehrfach übergebene Wohnungen zählen nur einmal.
    """

    @classmethod
    def compute(
        cls,
        *,
        apartments: Sequence[ApartmentData],
        tenants: Iterable[TenantData],
        cost_types: Sequence[CostTypeData],
        occupancy_months_by_apartment: Mapping[int, int],
        active_periods: Iterable[PrepaymentPeriodData],
        year: int,
        vacancy_label: str = DEFAULT_VACANCY_LABEL,
    ) -> CalculationResult[list[AllocationResult]]:
        collector = WarningCollector(logger)

        if not apartments:
            collector.warn(
                WarningCode.NO_APARTMENTS,
                "Abrechnung: keine Wohnungen übergeben - Ergebnis bleibt leer.",
            )
            return collector.result([])

        if not cost_types:
            collector.warn(
                WarningCode.NO_COST_TYPES,
                "Abrechnung: keine Kostenarten übergeben - Ergebnis bleibt leer.",
            )
            return collector.result([])

        if not is_valid_year(year):
            collector.warn(
                WarningCode.YEAR_OUT_OF_RANGE,
                f"Abrechnung: ungewöhnliches Jahr {year} (erlaubt {MIN_YEAR}..{MAX_YEAR}) "
                "- Ergebnis bleibt leer.",
                year=year,
            )
            return collector.result([])

        total_cost = sum((Decimal(cost_type.amount) for cost_type in cost_types), Decimal("0"))

        unique_apartments: list[ApartmentData] = []
        months_by_apartment: dict[int, int] = {}
        units_by_apartment: dict[int, int] = {}
        for apartment in apartments:
            if apartment.id in units_by_apartment:
                collector.warn(
                    WarningCode.DUPLICATE_APARTMENT,
                    f"Wohnung {apartment.id} ist mehrfach übergeben - weiterer Eintrag übersprungen.",
                    apartment_id=apartment.id,
                )
                continue
            unique_apartments.append(apartment)
            months = cls._effective_months(
                apartment.id,
                occupancy_months_by_apartment.get(apartment.id, DEFAULT_MONTHS),
                collector,
            )
            area = apartment.living_area
            if area < 0:
                collector.warn(
                    WarningCode.NEGATIVE_AREA,
                    f"Wohnung {apartment.id}: negative Wohnfläche ({area}) - wird als 0 behandelt.",
                    apartment_id=apartment.id,
                    living_area=area,
                )
                area = 0
            months_by_apartment[apartment.id] = months
            units_by_apartment[apartment.id] = area * months

        total_units = sum(units_by_apartment.values())
        if total_units <= 0:
            collector.warn(
                WarningCode.NO_UNITS,
                f"Abrechnung: Summe der Einheiten ist {total_units} - vermutlich Monate oder "
                "Wohnflächen falsch. Ergebnis bleibt leer.",
                total_units=total_units,
            )
            return collector.result([])

        cost_per_unit = quantize_ratio6(total_cost / Decimal(total_units))

        periods_by_apartment: dict[int, list[PrepaymentPeriodData]] = defaultdict(list)
        for period in active_periods:
            periods_by_apartment[period.apartment_id].append(period)

        tenant_names = {tenant.id: tenant.name for tenant in tenants}

        results: list[AllocationResult] = []
        for apartment in unique_apartments:
            months = months_by_apartment[apartment.id]
            units = units_by_apartment[apartment.id]

            allocated_cost = round_to_whole_currency_unit(cost_per_unit * units)

            prepayment = PrepaymentReconciler.reconcile(
                periods=periods_by_apartment.get(apartment.id),
                year=year,
                fallback_annual_amount=apartment.annual_prepayment,
                occupancy_months=months,
            )
            collector.extend(prepayment.warnings)

            # Ergebnis aus der gerundeten Umlage, damit es zu den angezeigten Werten passt
            balance = round_to_whole_currency_unit(prepayment.value - allocated_cost)

            results.append(
                AllocationResult(
                    apartment_id=apartment.id,
                    tenant_id=apartment.current_tenant_id,
                    tenant_name=cls._tenant_name(
                        apartment, tenant_names, vacancy_label, collector
                    ),
                    living_area=apartment.living_area,
                    months=months,
                    units=units,
                    allocated_cost=allocated_cost,
                    prepayment=prepayment.value,
                    balance=balance,
                )
            )

        return collector.result(results)

    @staticmethod
    def _effective_months(apartment_id: int, raw_months: int, collector: WarningCollector) -> int:
        months = min(max(int(raw_months), 0), 12)
        if months != raw_months:
            collector.warn(
                WarningCode.MONTHS_CLAMPED,
                f"Wohnung {apartment_id}: Monate {raw_months} auf {months} begrenzt.",
                apartment_id=apartment_id,
                months=raw_months,
            )
        return months

    @staticmethod
    def _tenant_name(
        apartment: ApartmentData,
        tenant_names: Mapping[int, str],
        vacancy_label: str,
        collector: WarningCollector,
    ) -> str:
        if apartment.current_tenant_id is None:
            return vacancy_label
        name = tenant_names.get(apartment.current_tenant_id)
        if name is None:
            collector.warn(
                WarningCode.UNKNOWN_TENANT,
                f"Wohnung {apartment.id}: Mieter {apartment.current_tenant_id} nicht gefunden "
                f"- als {vacancy_label} geführt.",
                apartment_id=apartment.id,
                tenant_id=apartment.current_tenant_id,
            )
            return vacancy_label
        return name
