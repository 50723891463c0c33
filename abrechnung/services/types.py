from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class OwnerData:
    id: int
    name: str
    settlement_period: str
    property_name: str = ""


@dataclass(frozen=True, slots=True)
class TenantData:
    id: int
    name: str


@dataclass(frozen=True, slots=True)
class ApartmentData:
    id: int
    living_area: int
    annual_prepayment: Decimal | None = None
    current_tenant_id: int | None = None
    address: str = ""


@dataclass(frozen=True, slots=True)
class CostTypeData:
    id: int
    label: str
    amount: Decimal


@dataclass(frozen=True, slots=True)
class PrepaymentPeriodData:
    apartment_id: int
    monthly_amount: Decimal
    start_date: date
    end_date: date
    tenant_id: int | None = None
    id: int | None = None


@dataclass(frozen=True, slots=True)
class AllocationResult:
    apartment_id: int
    tenant_id: int | None
    tenant_name: str
    living_area: int
    months: int
    units: int
    allocated_cost: Decimal
    prepayment: Decimal
    # >0 = Guthaben, <0 = Nachzahlung
    balance: Decimal
