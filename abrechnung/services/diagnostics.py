from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Generic, Mapping, TypeVar

T = TypeVar("T")


class WarningCode:
    NO_APARTMENTS = "no_apartments"
    NO_COST_TYPES = "no_cost_types"
    YEAR_OUT_OF_RANGE = "year_out_of_range"
    NO_UNITS = "no_units"
    NEGATIVE_AREA = "negative_area"
    MONTHS_CLAMPED = "months_clamped"
    UNKNOWN_TENANT = "unknown_tenant"
    UNKNOWN_APARTMENT = "unknown_apartment"
    DUPLICATE_APARTMENT = "duplicate_apartment"
    PERIOD_APARTMENT_MISMATCH = "period_apartment_mismatch"
    PERIOD_END_BEFORE_START = "period_end_before_start"
    PERIOD_MONTHS_OUT_OF_RANGE = "period_months_out_of_range"
    PERIOD_NEGATIVE_AMOUNT = "period_negative_amount"
    PERIOD_SUB_CENT_AMOUNT = "period_sub_cent_amount"
    PERIOD_UNKNOWN_TENANT = "period_unknown_tenant"
    PERIOD_OVERLAP = "period_overlap"


@dataclass(frozen=True, slots=True)
class SettlementWarning:
    code: str
    message: str
    apartment_id: int | None = None
    context: Mapping[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class CalculationResult(Generic[T]):
    value: T
    warnings: list[SettlementWarning] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


class WarningCollector:
    """Sammelt strukturierte Warnungen und schreibt sie gleichzeitig ins Log."""

    def __init__(self, logger: logging.Logger) -> None:
        self.logger = logger
        self.warnings: list[SettlementWarning] = []

    def warn(
        self,
        code: str,
        message: str,
        *,
        apartment_id: int | None = None,
        **context: Any,
    ) -> None:
        self.logger.warning(message)
        self.warnings.append(
            SettlementWarning(
                code=code,
                message=message,
                apartment_id=apartment_id,
                context=context,
            )
        )

    def extend(self, warnings: list[SettlementWarning]) -> None:
        # bereits geloggt
        self.warnings.extend(warnings)

    def result(self, value: T) -> CalculationResult[T]:
        return CalculationResult(value=value, warnings=list(self.warnings))
