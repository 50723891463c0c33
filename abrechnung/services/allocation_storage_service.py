from __future__ import annotations

from typing import Iterable

from django.db import transaction

from ..models import AllocationRecord
from .rounding import quantize_cent
from .types import AllocationResult


class AllocationStorageService:
    """Speichert die Abrechnungsergebnisse eines Jahres (Wohnungskosten)."""

    @staticmethod
    def _to_result(record: AllocationRecord) -> AllocationResult:
        return AllocationResult(
            apartment_id=record.apartment_id,
            tenant_id=record.tenant_id,
            tenant_name=record.tenant_name,
            living_area=record.living_area,
            months=record.months,
            units=record.units,
            allocated_cost=record.allocated_cost,
            prepayment=record.prepayment,
            balance=record.balance,
        )

    @classmethod
    def save_for_year(cls, year: int, results: Iterable[AllocationResult]) -> list[AllocationRecord]:
        """Ersetzt alle gespeicherten Ergebnisse für ``year`` in einer Transaktion."""
        with transaction.atomic():
            AllocationRecord.objects.filter(year=year).delete()
            records = [
                AllocationRecord(
                    year=year,
                    apartment_id=result.apartment_id,
                    tenant_id=result.tenant_id,
                    tenant_name=result.tenant_name,
                    living_area=result.living_area,
                    months=result.months,
                    units=result.units,
                    allocated_cost=quantize_cent(result.allocated_cost),
                    prepayment=quantize_cent(result.prepayment),
                    balance=quantize_cent(result.balance),
                )
                for result in results
            ]
            return AllocationRecord.objects.bulk_create(records)

    @classmethod
    def get_for_year(cls, year: int) -> list[AllocationResult]:
        records = AllocationRecord.objects.filter(year=year).order_by("apartment_id", "id")
        return [cls._to_result(record) for record in records]
