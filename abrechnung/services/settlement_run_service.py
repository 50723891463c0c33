from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol

from django.conf import settings
from django.db import transaction

from ..models import Apartment, ApartmentYearSetting, CostType, Owner, PrepaymentPeriod, Tenant
from .allocation_service import DEFAULT_VACANCY_LABEL, AllocationService
from .allocation_storage_service import AllocationStorageService
from .diagnostics import SettlementWarning
from .periods import is_valid_year, year_bounds
from .prepayment_period_service import period_to_data
from .types import (
    AllocationResult,
    ApartmentData,
    CostTypeData,
    OwnerData,
    PrepaymentPeriodData,
    TenantData,
)

logger = logging.getLogger(__name__)


class SettlementDataSource(Protocol):
    def list_apartments(self) -> list[ApartmentData]:
        ...

    def list_tenants(self) -> list[TenantData]:
        ...

    def list_cost_types(self) -> list[CostTypeData]:
        ...

    def occupancy_months_by_apartment(self, year: int) -> dict[int, int]:
        ...

    def active_periods(self, year: int) -> list[PrepaymentPeriodData]:
        ...

    def first_owner(self) -> OwnerData | None:
        ...


class OrmSettlementDataSource:
    def list_apartments(self) -> list[ApartmentData]:
        return [
            ApartmentData(
                id=apartment.pk,
                living_area=apartment.living_area,
                annual_prepayment=apartment.annual_prepayment,
                current_tenant_id=apartment.current_tenant_id,
                address=apartment.address,
            )
            for apartment in Apartment.objects.order_by("id")
        ]

    def list_tenants(self) -> list[TenantData]:
        return [TenantData(id=tenant.pk, name=tenant.name) for tenant in Tenant.objects.order_by("id")]

    def list_cost_types(self) -> list[CostTypeData]:
        return [
            CostTypeData(id=cost_type.pk, label=cost_type.label, amount=cost_type.amount)
            for cost_type in CostType.objects.order_by("id")
        ]

    def occupancy_months_by_apartment(self, year: int) -> dict[int, int]:
        return dict(
            ApartmentYearSetting.objects.filter(year=year).values_list(
                "apartment_id", "occupancy_months"
            )
        )

    def active_periods(self, year: int) -> list[PrepaymentPeriodData]:
        """Perioden aller Wohnungen, die für ``year`` im Periodenmodus stehen (eine Abfrage)."""
        year_start, year_end = year_bounds(year)
        period_mode_apartments = ApartmentYearSetting.objects.filter(
            year=year,
            prepayment_mode=ApartmentYearSetting.PrepaymentMode.PERIODS,
        ).values("apartment_id")
        periods = PrepaymentPeriod.objects.filter(
            apartment_id__in=period_mode_apartments,
            start_date__lte=year_end,
            end_date__gte=year_start,
        ).order_by("apartment_id", "start_date", "id")
        return [period_to_data(period) for period in periods]

    def first_owner(self) -> OwnerData | None:
        owner = Owner.objects.order_by("id").first()
        if owner is None:
            return None
        return OwnerData(
            id=owner.pk,
            name=owner.name,
            settlement_period=owner.settlement_period,
            property_name=owner.property_name,
        )


@dataclass(slots=True)
class SettlementRun:
    year: int
    results: list[AllocationResult]
    warnings: list[SettlementWarning] = field(default_factory=list)
    saved: bool = False
    owner: OwnerData | None = None

    @property
    def total_allocated(self) -> Decimal:
        return sum((result.allocated_cost for result in self.results), Decimal("0.00"))

    @property
    def total_prepayment(self) -> Decimal:
        return sum((result.prepayment for result in self.results), Decimal("0.00"))

    @property
    def total_balance(self) -> Decimal:
        return sum((result.balance for result in self.results), Decimal("0.00"))


class SettlementRunService:
    """Lädt die Stammdaten eines Jahres, rechnet die Umlage und speichert auf Wunsch."""

    def __init__(
        self,
        *,
        year: int,
        data_source: SettlementDataSource | None = None,
        storage: type[AllocationStorageService] | None = None,
        vacancy_label: str | None = None,
    ) -> None:
        self.year = int(year)
        self.data_source = data_source or OrmSettlementDataSource()
        self.storage = storage or AllocationStorageService
        self.vacancy_label = vacancy_label or getattr(
            settings, "ABRECHNUNG_VACANCY_LABEL", DEFAULT_VACANCY_LABEL
        )

    def calculate(self) -> SettlementRun:
        # Alle Lesezugriffe in einer Transaktion, damit laufende Ersetzungen nicht halb sichtbar sind
        with transaction.atomic():
            apartments = self.data_source.list_apartments()
            tenants = self.data_source.list_tenants()
            cost_types = self.data_source.list_cost_types()
            months = self.data_source.occupancy_months_by_apartment(self.year)
            periods = self.data_source.active_periods(self.year) if is_valid_year(self.year) else []
            owner = self.data_source.first_owner()

        outcome = AllocationService.compute(
            apartments=apartments,
            tenants=tenants,
            cost_types=cost_types,
            occupancy_months_by_apartment=months,
            active_periods=periods,
            year=self.year,
            vacancy_label=self.vacancy_label,
        )
        return SettlementRun(
            year=self.year,
            results=outcome.value,
            warnings=outcome.warnings,
            owner=owner,
        )

    def calculate_and_save(self) -> SettlementRun:
        run = self.calculate()
        if not run.results:
            logger.info("Abrechnung %s: kein Ergebnis - nichts gespeichert.", self.year)
            return run
        self.storage.save_for_year(self.year, run.results)
        run.saved = True
        logger.info("Abrechnung %s: %s Wohnungen gespeichert.", self.year, len(run.results))
        return run
