import logging
from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase

from .services.allocation_service import AllocationService
from .services.diagnostics import WarningCode, WarningCollector
from .services.periods import (
    clip_to_year,
    inclusive_month_count,
    overlaps_year,
    validate_period,
)
from .services.prepayment_service import PrepaymentReconciler
from .services.rounding import round_to_whole_currency_unit
from .services.types import ApartmentData, CostTypeData, PrepaymentPeriodData, TenantData


def _period(apartment_id, amount, start, end):
    return PrepaymentPeriodData(
        apartment_id=apartment_id,
        monthly_amount=Decimal(amount),
        start_date=start,
        end_date=end,
    )


def _codes(warnings):
    return [warning.code for warning in warnings]


class RoundToWholeCurrencyUnitTests(SimpleTestCase):
    def test_symmetric_rounding_around_zero(self):
        self.assertEqual(round_to_whole_currency_unit(Decimal("0.49")), Decimal("0.00"))
        self.assertEqual(round_to_whole_currency_unit(Decimal("0.50")), Decimal("1.00"))
        self.assertEqual(round_to_whole_currency_unit(Decimal("-0.49")), Decimal("0.00"))
        self.assertEqual(round_to_whole_currency_unit(Decimal("-0.50")), Decimal("-1.00"))

    def test_negative_values_below_half_never_render_as_negative_zero(self):
        self.assertEqual(str(round_to_whole_currency_unit(Decimal("-0.49"))), "0.00")

    def test_cents_are_normalized_half_up_first(self):
        # 2.495 -> 2.50 -> 3.00, 2.494 -> 2.49 -> 2.00
        self.assertEqual(round_to_whole_currency_unit(Decimal("2.495")), Decimal("3.00"))
        self.assertEqual(round_to_whole_currency_unit(Decimal("2.494")), Decimal("2.00"))
        self.assertEqual(round_to_whole_currency_unit(Decimal("-2.495")), Decimal("-3.00"))

    def test_result_keeps_two_decimal_places(self):
        self.assertEqual(str(round_to_whole_currency_unit(Decimal("1200.000000"))), "1200.00")
        self.assertEqual(str(round_to_whole_currency_unit(Decimal("-540"))), "-540.00")

    def test_is_idempotent(self):
        for raw in ("0.49", "0.50", "-0.50", "12.345", "-99.994", "1234.5", "0"):
            once = round_to_whole_currency_unit(Decimal(raw))
            self.assertEqual(round_to_whole_currency_unit(once), once)


class PeriodCalendarTests(SimpleTestCase):
    def test_same_month_counts_as_one(self):
        self.assertEqual(inclusive_month_count(date(2024, 1, 15), date(2024, 1, 20)), 1)

    def test_month_count_ignores_days(self):
        self.assertEqual(inclusive_month_count(date(2024, 1, 31), date(2024, 6, 1)), 6)
        self.assertEqual(inclusive_month_count(date(2023, 11, 1), date(2024, 2, 28)), 4)

    def test_month_count_can_be_non_positive_for_reversed_ranges(self):
        self.assertEqual(inclusive_month_count(date(2024, 3, 1), date(2024, 1, 1)), -1)

    def test_clip_to_year(self):
        self.assertEqual(
            clip_to_year(date(2023, 7, 1), date(2024, 6, 30), 2024),
            (date(2024, 1, 1), date(2024, 6, 30)),
        )
        self.assertEqual(
            clip_to_year(date(2020, 1, 1), date(2030, 12, 31), 2024),
            (date(2024, 1, 1), date(2024, 12, 31)),
        )
        self.assertIsNone(clip_to_year(date(2023, 1, 1), date(2023, 12, 31), 2024))

    def test_overlaps_year(self):
        self.assertTrue(overlaps_year(date(2023, 12, 31), date(2024, 1, 1), 2024))
        self.assertFalse(overlaps_year(date(2025, 1, 1), date(2025, 3, 31), 2024))

    def test_validate_period_reports_each_problem(self):
        cases = [
            (_period(2, "10", date(2024, 1, 1), date(2024, 2, 1)), WarningCode.PERIOD_APARTMENT_MISMATCH),
            (_period(1, "10", date(2024, 5, 1), date(2024, 2, 1)), WarningCode.PERIOD_END_BEFORE_START),
            (_period(1, "10", date(2000, 1, 1), date(2024, 12, 31)), WarningCode.PERIOD_MONTHS_OUT_OF_RANGE),
            (_period(1, "-10", date(2024, 1, 1), date(2024, 2, 1)), WarningCode.PERIOD_NEGATIVE_AMOUNT),
            (_period(1, "50.005", date(2024, 1, 1), date(2024, 2, 1)), WarningCode.PERIOD_SUB_CENT_AMOUNT),
        ]
        for period, expected_code in cases:
            collector = WarningCollector(logging.getLogger("abrechnung.tests"))
            self.assertFalse(validate_period(period, apartment_id=1, collector=collector))
            self.assertEqual(_codes(collector.warnings), [expected_code])

    def test_validate_period_accepts_240_months(self):
        collector = WarningCollector(logging.getLogger("abrechnung.tests"))
        period = _period(1, "0", date(2005, 1, 1), date(2024, 12, 31))
        self.assertTrue(validate_period(period, apartment_id=1, collector=collector))
        self.assertEqual(collector.warnings, [])


class PrepaymentReconcilerTests(SimpleTestCase):
    def _reconcile(self, periods, *, year=2024, fallback=None, months=12):
        return PrepaymentReconciler.reconcile(
            periods=periods,
            year=year,
            fallback_annual_amount=fallback,
            occupancy_months=months,
        )

    def test_fallback_prorates_annual_amount_by_months(self):
        outcome = self._reconcile(None, fallback=Decimal("1200"), months=6)
        self.assertEqual(outcome.value, Decimal("600.00"))
        self.assertEqual(outcome.warnings, [])

    def test_fallback_rounds_half_up_to_cents(self):
        outcome = self._reconcile([], fallback=Decimal("1000"), months=7)
        self.assertEqual(outcome.value, Decimal("583.33"))

    def test_fallback_without_amount_or_months_is_zero(self):
        self.assertEqual(self._reconcile(None, fallback=None, months=12).value, Decimal("0"))
        self.assertEqual(self._reconcile(None, fallback=Decimal("1200"), months=0).value, Decimal("0"))

    def test_two_half_year_periods(self):
        periods = [
            _period(1, "50", date(2024, 1, 1), date(2024, 6, 30)),
            _period(1, "60", date(2024, 7, 1), date(2024, 12, 31)),
        ]
        outcome = self._reconcile(periods, fallback=Decimal("9999"))
        self.assertEqual(outcome.value, Decimal("660.00"))
        self.assertEqual(outcome.warnings, [])

    def test_multi_year_period_is_clipped_to_the_year(self):
        periods = [_period(1, "100", date(2023, 7, 1), date(2025, 6, 30))]
        self.assertEqual(self._reconcile(periods).value, Decimal("1200"))

    def test_period_outside_year_is_skipped_silently(self):
        periods = [
            _period(1, "80", date(2023, 1, 1), date(2023, 12, 31)),
            _period(1, "40", date(2024, 3, 1), date(2024, 4, 30)),
        ]
        outcome = self._reconcile(periods)
        self.assertEqual(outcome.value, Decimal("80"))
        self.assertEqual(outcome.warnings, [])

    def test_negative_amount_is_skipped_with_warning(self):
        periods = [
            _period(1, "-50", date(2024, 1, 1), date(2024, 6, 30)),
            _period(1, "60", date(2024, 7, 1), date(2024, 12, 31)),
        ]
        outcome = self._reconcile(periods)
        self.assertEqual(outcome.value, Decimal("360"))
        self.assertEqual(_codes(outcome.warnings), [WarningCode.PERIOD_NEGATIVE_AMOUNT])
        self.assertEqual(outcome.warnings[0].apartment_id, 1)

    def test_order_does_not_matter_and_overlaps_are_summed(self):
        periods = [
            _period(1, "10.50", date(2024, 1, 1), date(2024, 12, 31)),
            _period(1, "10.50", date(2024, 1, 1), date(2024, 12, 31)),
            _period(1, "33.33", date(2024, 2, 10), date(2024, 4, 5)),
        ]
        forward = self._reconcile(periods).value
        backward = self._reconcile(list(reversed(periods))).value
        self.assertEqual(forward, backward)
        self.assertEqual(forward, Decimal("351.99"))

    def test_year_out_of_range_yields_zero(self):
        periods = [_period(1, "50", date(2024, 1, 1), date(2024, 12, 31))]
        outcome = self._reconcile(periods, year=1899)
        self.assertEqual(outcome.value, Decimal("0"))
        self.assertEqual(_codes(outcome.warnings), [WarningCode.YEAR_OUT_OF_RANGE])


class AllocationServiceTests(SimpleTestCase):
    def _compute(self, apartments, cost_amounts, *, months=None, periods=(), tenants=(), year=2024, **kwargs):
        cost_types = [
            CostTypeData(id=index, label=f"Kostenart {index}", amount=Decimal(amount))
            for index, amount in enumerate(cost_amounts, start=1)
        ]
        return AllocationService.compute(
            apartments=apartments,
            tenants=list(tenants),
            cost_types=cost_types,
            occupancy_months_by_apartment=months or {},
            active_periods=list(periods),
            year=year,
            **kwargs,
        )

    def test_single_apartment_takes_all_costs(self):
        outcome = self._compute([ApartmentData(id=1, living_area=50)], ["1200"])
        result = outcome.value[0]
        self.assertEqual(result.units, 600)
        self.assertEqual(result.months, 12)
        self.assertEqual(result.allocated_cost, Decimal("1200.00"))
        self.assertEqual(outcome.warnings, [])

    def test_costs_split_by_units(self):
        apartments = [
            ApartmentData(id=1, living_area=50),
            ApartmentData(id=2, living_area=100),
        ]
        outcome = self._compute(apartments, ["500", "400"])
        self.assertEqual([result.units for result in outcome.value], [600, 1200])
        self.assertEqual(
            [result.allocated_cost for result in outcome.value],
            [Decimal("300.00"), Decimal("600.00")],
        )

    def test_displayed_shares_need_not_sum_to_total_cost(self):
        apartments = [ApartmentData(id=index, living_area=50) for index in (1, 2, 3)]
        outcome = self._compute(apartments, ["100"])
        shares = [result.allocated_cost for result in outcome.value]
        self.assertEqual(shares, [Decimal("33.00")] * 3)
        self.assertEqual(sum(shares), Decimal("99.00"))

    def test_zero_months_means_zero_units_and_cost(self):
        apartments = [
            ApartmentData(id=1, living_area=80),
            ApartmentData(id=2, living_area=40),
        ]
        outcome = self._compute(apartments, ["960"], months={1: 0})
        vacant, occupied = outcome.value
        self.assertEqual(vacant.units, 0)
        self.assertEqual(vacant.allocated_cost, Decimal("0.00"))
        self.assertEqual(occupied.allocated_cost, Decimal("960.00"))

    def test_negative_area_is_treated_as_zero(self):
        apartments = [
            ApartmentData(id=1, living_area=-20),
            ApartmentData(id=2, living_area=60),
        ]
        outcome = self._compute(apartments, ["720"])
        broken, regular = outcome.value
        self.assertEqual(broken.units, 0)
        self.assertEqual(broken.living_area, -20)
        self.assertEqual(broken.allocated_cost, Decimal("0.00"))
        self.assertEqual(regular.allocated_cost, Decimal("720.00"))
        self.assertEqual(_codes(outcome.warnings), [WarningCode.NEGATIVE_AREA])

    def test_months_are_clamped(self):
        apartments = [
            ApartmentData(id=1, living_area=50),
            ApartmentData(id=2, living_area=50),
        ]
        outcome = self._compute(apartments, ["600"], months={1: 15, 2: -3})
        self.assertEqual([result.months for result in outcome.value], [12, 0])
        self.assertEqual(
            _codes(outcome.warnings),
            [WarningCode.MONTHS_CLAMPED, WarningCode.MONTHS_CLAMPED],
        )

    def test_guards_return_empty_result_with_warning(self):
        apartment = ApartmentData(id=1, living_area=50)
        cases = [
            (self._compute([], ["100"]), WarningCode.NO_APARTMENTS),
            (self._compute([apartment], []), WarningCode.NO_COST_TYPES),
            (self._compute([apartment], ["100"], year=1899), WarningCode.YEAR_OUT_OF_RANGE),
            (self._compute([apartment], ["100"], year=2101), WarningCode.YEAR_OUT_OF_RANGE),
            (self._compute([apartment], ["100"], months={1: 0}), WarningCode.NO_UNITS),
        ]
        for outcome, expected_code in cases:
            self.assertEqual(outcome.value, [])
            self.assertEqual(_codes(outcome.warnings), [expected_code])

    def test_balance_uses_periods_or_fallback(self):
        apartments = [
            ApartmentData(id=1, living_area=50, annual_prepayment=Decimal("5000")),
            ApartmentData(id=2, living_area=50, annual_prepayment=Decimal("1300")),
        ]
        periods = [
            _period(1, "50", date(2024, 1, 1), date(2024, 6, 30)),
            _period(1, "60", date(2024, 7, 1), date(2024, 12, 31)),
        ]
        outcome = self._compute(apartments, ["2400"], periods=periods)
        with_periods, with_fallback = outcome.value
        self.assertEqual(with_periods.prepayment, Decimal("660"))
        self.assertEqual(with_periods.balance, Decimal("-540.00"))
        self.assertEqual(with_fallback.prepayment, Decimal("1300.00"))
        self.assertEqual(with_fallback.balance, Decimal("100.00"))

    def test_balance_is_rounded_to_whole_currency_unit(self):
        apartments = [ApartmentData(id=1, living_area=50, annual_prepayment=Decimal("1000"))]
        outcome = self._compute(apartments, ["500"], months={1: 7})
        result = outcome.value[0]
        self.assertEqual(result.prepayment, Decimal("583.33"))
        self.assertEqual(result.balance, Decimal("83.00"))

    def test_period_warnings_are_passed_through(self):
        apartments = [ApartmentData(id=1, living_area=50)]
        periods = [_period(1, "-5", date(2024, 1, 1), date(2024, 12, 31))]
        outcome = self._compute(apartments, ["100"], periods=periods)
        self.assertEqual(outcome.value[0].prepayment, Decimal("0"))
        self.assertEqual(_codes(outcome.warnings), [WarningCode.PERIOD_NEGATIVE_AMOUNT])

    def test_tenant_name_and_vacancy_label(self):
        apartments = [
            ApartmentData(id=1, living_area=50, current_tenant_id=7),
            ApartmentData(id=2, living_area=50),
            ApartmentData(id=3, living_area=50, current_tenant_id=99),
        ]
        tenants = [TenantData(id=7, name="Anna Huber")]
        outcome = self._compute(apartments, ["300"], tenants=tenants, vacancy_label="frei")
        self.assertEqual(
            [result.tenant_name for result in outcome.value],
            ["Anna Huber", "frei", "frei"],
        )
        self.assertEqual(outcome.value[2].tenant_id, 99)
        self.assertEqual(_codes(outcome.warnings), [WarningCode.UNKNOWN_TENANT])

    def test_default_vacancy_label(self):
        outcome = self._compute([ApartmentData(id=1, living_area=50)], ["300"])
        self.assertEqual(outcome.value[0].tenant_name, "Leerstand")

    def test_duplicate_apartment_is_counted_once(self):
        apartments = [
            ApartmentData(id=1, living_area=50),
            ApartmentData(id=2, living_area=50),
            ApartmentData(id=1, living_area=50),
        ]
        outcome = self._compute(apartments, ["900"])

        self.assertEqual([result.apartment_id for result in outcome.value], [1, 2])
        self.assertEqual(
            [result.allocated_cost for result in outcome.value],
            [Decimal("450.00"), Decimal("450.00")],
        )
        self.assertEqual(_codes(outcome.warnings), [WarningCode.DUPLICATE_APARTMENT])

    def test_output_follows_input_order_and_is_deterministic(self):
        apartments = [
            ApartmentData(id=3, living_area=70),
            ApartmentData(id=1, living_area=45),
            ApartmentData(id=2, living_area=90, annual_prepayment=Decimal("777.77")),
        ]
        first = self._compute(apartments, ["1234.56", "78.90"], months={1: 5})
        second = self._compute(apartments, ["1234.56", "78.90"], months={1: 5})
        self.assertEqual([result.apartment_id for result in first.value], [3, 1, 2])
        self.assertEqual(first.value, second.value)
        self.assertEqual(
            [str(result.allocated_cost) for result in first.value],
            [str(result.allocated_cost) for result in second.value],
        )

