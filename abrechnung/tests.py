import json
import tempfile
from datetime import date
from decimal import Decimal
from io import StringIO
from pathlib import Path
from unittest.mock import patch

from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError
from django.test import TestCase, TransactionTestCase, override_settings

from .models import (
    AllocationRecord,
    Apartment,
    ApartmentYearSetting,
    CostType,
    Owner,
    PrepaymentPeriod,
    Tenant,
)
from .services.allocation_storage_service import AllocationStorageService
from .services.diagnostics import WarningCode
from .services.prepayment_period_service import PrepaymentPeriodService
from .services.settlement_run_service import SettlementRunService
from .services.statement_export_service import StatementExportService
from .services.types import (
    AllocationResult,
    ApartmentData,
    CostTypeData,
    PrepaymentPeriodData,
    TenantData,
)


def _codes(warnings):
    return [warning.code for warning in warnings]


def _spans(periods):
    return sorted((period.monthly_amount, period.start_date, period.end_date) for period in periods)


class PrepaymentPeriodServiceTests(TestCase):
    def setUp(self):
        self.tenant = Tenant.objects.create(name="Anna Huber")
        self.apartment = Apartment.objects.create(
            address="Hauptstraße 1/1",
            living_area=50,
            current_tenant=self.tenant,
        )
        self.other_apartment = Apartment.objects.create(address="Hauptstraße 1/2", living_area=70)

    def _store(self, apartment, amount, start, end):
        return PrepaymentPeriod.objects.create(
            apartment=apartment,
            monthly_amount=Decimal(amount),
            start_date=start,
            end_date=end,
        )

    def _new(self, amount, start, end, apartment_id=None, tenant_id=None):
        return PrepaymentPeriodData(
            apartment_id=apartment_id or self.apartment.pk,
            tenant_id=tenant_id,
            monthly_amount=Decimal(amount),
            start_date=start,
            end_date=end,
        )

    def test_replace_deletes_everything_overlapping_the_year(self):
        kept = self._store(self.apartment, "40.00", date(2022, 1, 1), date(2022, 12, 31))
        self._store(self.apartment, "45.00", date(2023, 7, 1), date(2024, 6, 30))
        self._store(self.apartment, "50.00", date(2024, 7, 1), date(2024, 12, 31))
        foreign = self._store(self.other_apartment, "70.00", date(2024, 1, 1), date(2024, 12, 31))

        outcome = PrepaymentPeriodService.replace_for_apartment_and_year(
            self.apartment.pk,
            2024,
            [self._new("55.00", date(2024, 1, 1), date(2024, 12, 31), tenant_id=self.tenant.pk)],
        )

        self.assertEqual(outcome.warnings, [])
        self.assertEqual(len(outcome.value), 1)
        remaining = PrepaymentPeriod.objects.filter(apartment=self.apartment).order_by("start_date")
        self.assertEqual(
            [(period.pk == kept.pk, period.monthly_amount) for period in remaining],
            [(True, Decimal("40.00")), (False, Decimal("55.00"))],
        )
        self.assertEqual(remaining[1].tenant, self.tenant)
        self.assertTrue(PrepaymentPeriod.objects.filter(pk=foreign.pk).exists())

    def test_invalid_entry_is_skipped_and_reported_once(self):
        outcome = PrepaymentPeriodService.replace_for_apartment_and_year(
            self.apartment.pk,
            2024,
            [
                self._new("50.00", date(2024, 1, 1), date(2024, 6, 30)),
                self._new("99.00", date(2024, 9, 1), date(2024, 8, 1)),
                self._new("60.00", date(2024, 7, 1), date(2024, 12, 31)),
            ],
        )

        self.assertEqual(_codes(outcome.warnings), [WarningCode.PERIOD_END_BEFORE_START])
        stored = PrepaymentPeriod.objects.filter(apartment=self.apartment)
        self.assertEqual(
            _spans(stored),
            [
                (Decimal("50.00"), date(2024, 1, 1), date(2024, 6, 30)),
                (Decimal("60.00"), date(2024, 7, 1), date(2024, 12, 31)),
            ],
        )

    def test_each_validation_rule_skips_its_entry(self):
        outcome = PrepaymentPeriodService.replace_for_apartment_and_year(
            self.apartment.pk,
            2024,
            [
                self._new("10.00", date(2024, 1, 1), date(2024, 3, 31), apartment_id=self.other_apartment.pk),
                self._new("10.00", date(2000, 1, 1), date(2024, 12, 31)),
                self._new("-10.00", date(2024, 1, 1), date(2024, 3, 31)),
                self._new("0.00", date(2024, 4, 1), date(2024, 4, 30)),
            ],
        )

        self.assertEqual(
            _codes(outcome.warnings),
            [
                WarningCode.PERIOD_APARTMENT_MISMATCH,
                WarningCode.PERIOD_MONTHS_OUT_OF_RANGE,
                WarningCode.PERIOD_NEGATIVE_AMOUNT,
            ],
        )
        self.assertEqual(
            _spans(PrepaymentPeriod.objects.all()),
            [(Decimal("0.00"), date(2024, 4, 1), date(2024, 4, 30))],
        )

    def test_replace_then_get_returns_the_valid_subset(self):
        self._store(self.apartment, "30.00", date(2024, 2, 1), date(2024, 5, 31))
        submitted = [
            self._new("50.00", date(2024, 1, 1), date(2024, 6, 30)),
            self._new("-1.00", date(2024, 7, 1), date(2024, 12, 31)),
            self._new("60.00", date(2024, 7, 1), date(2024, 12, 31)),
        ]

        PrepaymentPeriodService.replace_for_apartment_and_year(self.apartment.pk, 2024, submitted)
        fetched = PrepaymentPeriodService.get_for_apartment_and_year(self.apartment.pk, 2024)

        self.assertEqual(fetched.warnings, [])
        self.assertEqual(_spans(fetched.value), _spans([submitted[0], submitted[2]]))
        self.assertEqual([period.start_date for period in fetched.value], [date(2024, 1, 1), date(2024, 7, 1)])

    def test_empty_list_resets_the_year(self):
        self._store(self.apartment, "50.00", date(2024, 1, 1), date(2024, 12, 31))

        outcome = PrepaymentPeriodService.replace_for_apartment_and_year(self.apartment.pk, 2024, [])

        self.assertEqual(outcome.value, [])
        self.assertEqual(outcome.warnings, [])
        self.assertFalse(PrepaymentPeriod.objects.filter(apartment=self.apartment).exists())

    def test_year_out_of_range_changes_nothing(self):
        self._store(self.apartment, "50.00", date(2024, 1, 1), date(2024, 12, 31))

        for year in (1899, 2101):
            outcome = PrepaymentPeriodService.replace_for_apartment_and_year(
                self.apartment.pk,
                year,
                [self._new("10.00", date(2024, 1, 1), date(2024, 1, 31))],
            )
            self.assertEqual(outcome.value, [])
            self.assertEqual(_codes(outcome.warnings), [WarningCode.YEAR_OUT_OF_RANGE])

        self.assertEqual(
            _spans(PrepaymentPeriod.objects.all()),
            [(Decimal("50.00"), date(2024, 1, 1), date(2024, 12, 31))],
        )

    def test_unknown_apartment_changes_nothing(self):
        outcome = PrepaymentPeriodService.replace_for_apartment_and_year(
            999999,
            2024,
            [self._new("10.00", date(2024, 1, 1), date(2024, 1, 31), apartment_id=999999)],
        )
        self.assertEqual(_codes(outcome.warnings), [WarningCode.UNKNOWN_APARTMENT])
        self.assertFalse(PrepaymentPeriod.objects.exists())

    def test_overlapping_new_periods_are_kept_with_warning(self):
        outcome = PrepaymentPeriodService.replace_for_apartment_and_year(
            self.apartment.pk,
            2024,
            [
                self._new("50.00", date(2024, 1, 1), date(2024, 6, 30)),
                self._new("20.00", date(2024, 6, 1), date(2024, 12, 31)),
            ],
        )
        self.assertEqual(_codes(outcome.warnings), [WarningCode.PERIOD_OVERLAP])
        self.assertEqual(PrepaymentPeriod.objects.filter(apartment=self.apartment).count(), 2)

    def test_failed_insert_rolls_back_the_delete(self):
        self._store(self.apartment, "50.00", date(2024, 1, 1), date(2024, 12, 31))

        with patch.object(PrepaymentPeriod.objects, "create", side_effect=DatabaseError("disk full")):
            with self.assertRaises(DatabaseError):
                PrepaymentPeriodService.replace_for_apartment_and_year(
                    self.apartment.pk,
                    2024,
                    [self._new("60.00", date(2024, 1, 1), date(2024, 12, 31))],
                )

        self.assertEqual(
            _spans(PrepaymentPeriod.objects.all()),
            [(Decimal("50.00"), date(2024, 1, 1), date(2024, 12, 31))],
        )

    def test_replacement_is_recorded_in_history(self):
        self._store(self.apartment, "50.00", date(2024, 1, 1), date(2024, 12, 31))

        PrepaymentPeriodService.replace_for_apartment_and_year(
            self.apartment.pk,
            2024,
            [self._new("60.00", date(2024, 1, 1), date(2024, 12, 31))],
        )

        self.assertEqual(PrepaymentPeriod.history.filter(history_type="+").count(), 2)
        self.assertEqual(PrepaymentPeriod.history.filter(history_type="-").count(), 1)

    def test_get_and_clear(self):
        self._store(self.apartment, "50.00", date(2024, 1, 1), date(2024, 6, 30))
        self._store(self.apartment, "50.00", date(2025, 1, 1), date(2025, 6, 30))

        self.assertEqual(len(PrepaymentPeriodService.get_for_apartment_and_year(self.apartment.pk, 2024).value), 1)
        out_of_range = PrepaymentPeriodService.get_for_apartment_and_year(self.apartment.pk, 3000)
        self.assertEqual(out_of_range.value, [])
        self.assertEqual(_codes(out_of_range.warnings), [WarningCode.YEAR_OUT_OF_RANGE])

        cleared = PrepaymentPeriodService.clear_for_apartment_and_year(self.apartment.pk, 2024)
        self.assertEqual(cleared.value, 1)
        self.assertEqual(PrepaymentPeriod.objects.filter(apartment=self.apartment).count(), 1)

    def test_apply_periods_and_reset_switch_the_mode(self):
        PrepaymentPeriodService.apply_periods(
            self.apartment.pk,
            2024,
            [self._new("50.00", date(2024, 1, 1), date(2024, 12, 31))],
        )
        setting = ApartmentYearSetting.objects.get(apartment=self.apartment, year=2024)
        self.assertEqual(setting.prepayment_mode, ApartmentYearSetting.PrepaymentMode.PERIODS)
        self.assertEqual(PrepaymentPeriod.objects.count(), 1)

        PrepaymentPeriodService.reset_to_standard(self.apartment.pk, 2024)
        setting.refresh_from_db()
        self.assertEqual(setting.prepayment_mode, ApartmentYearSetting.PrepaymentMode.STANDARD)
        self.assertFalse(PrepaymentPeriod.objects.exists())

    def test_reset_for_unknown_apartment_creates_no_setting(self):
        outcome = PrepaymentPeriodService.reset_to_standard(999999, 2024)
        self.assertEqual(_codes(outcome.warnings), [WarningCode.UNKNOWN_APARTMENT])
        self.assertFalse(ApartmentYearSetting.objects.exists())


    def test_sub_cent_amount_is_skipped_not_rounded(self):
        outcome = PrepaymentPeriodService.replace_for_apartment_and_year(
            self.apartment.pk,
            2024,
            [
                self._new("50.005", date(2024, 1, 1), date(2024, 6, 30)),
                self._new("60.10", date(2024, 7, 1), date(2024, 12, 31)),
            ],
        )

        self.assertEqual(_codes(outcome.warnings), [WarningCode.PERIOD_SUB_CENT_AMOUNT])
        fetched = PrepaymentPeriodService.get_for_apartment_and_year(self.apartment.pk, 2024)
        self.assertEqual(_spans(fetched.value), _spans(outcome.value))
        self.assertEqual(
            _spans(fetched.value),
            [(Decimal("60.10"), date(2024, 7, 1), date(2024, 12, 31))],
        )


class PrepaymentPeriodTenantReferenceTests(TransactionTestCase):
    """Fremdschlüssel werden erst beim Commit geprüft, daher ohne umschließende Testtransaktion."""

    def setUp(self):
        self.tenant = Tenant.objects.create(name="Anna Huber")
        self.apartment = Apartment.objects.create(address="Hauptstraße 1/1", living_area=50)

    def test_unknown_tenant_does_not_abort_the_replacement(self):
        outcome = PrepaymentPeriodService.replace_for_apartment_and_year(
            self.apartment.pk,
            2024,
            [
                PrepaymentPeriodData(
                    apartment_id=self.apartment.pk,
                    tenant_id=424242,
                    monthly_amount=Decimal("50.00"),
                    start_date=date(2024, 1, 1),
                    end_date=date(2024, 6, 30),
                ),
                PrepaymentPeriodData(
                    apartment_id=self.apartment.pk,
                    tenant_id=self.tenant.pk,
                    monthly_amount=Decimal("60.00"),
                    start_date=date(2024, 7, 1),
                    end_date=date(2024, 12, 31),
                ),
            ],
        )

        self.assertEqual(_codes(outcome.warnings), [WarningCode.PERIOD_UNKNOWN_TENANT])
        stored = PrepaymentPeriod.objects.filter(apartment=self.apartment).order_by("start_date")
        self.assertEqual(
            [(period.monthly_amount, period.tenant_id) for period in stored],
            [(Decimal("50.00"), None), (Decimal("60.00"), self.tenant.pk)],
        )
        self.assertEqual([period.tenant_id for period in outcome.value], [None, self.tenant.pk])


class PrepaymentPeriodModelTests(TestCase):
    def setUp(self):
        self.apartment = Apartment.objects.create(address="Gasse 3", living_area=40)

    def test_clean_rejects_end_before_start_and_negative_amount(self):
        period = PrepaymentPeriod(
            apartment=self.apartment,
            monthly_amount=Decimal("-1.00"),
            start_date=date(2024, 5, 1),
            end_date=date(2024, 4, 1),
        )
        with self.assertRaises(ValidationError) as ctx:
            period.full_clean()
        self.assertIn("end_date", ctx.exception.message_dict)
        self.assertIn("monthly_amount", ctx.exception.message_dict)

    def test_clean_rejects_more_than_240_months(self):
        period = PrepaymentPeriod(
            apartment=self.apartment,
            monthly_amount=Decimal("10.00"),
            start_date=date(2000, 1, 1),
            end_date=date(2024, 12, 31),
        )
        with self.assertRaises(ValidationError):
            period.full_clean()

    def test_clean_accepts_valid_period(self):
        period = PrepaymentPeriod(
            apartment=self.apartment,
            monthly_amount=Decimal("10.00"),
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 1),
        )
        period.full_clean()


class AllocationStorageServiceTests(TestCase):
    def setUp(self):
        self.apartment = Apartment.objects.create(address="Gasse 3", living_area=40)

    def _result(self, balance):
        return AllocationResult(
            apartment_id=self.apartment.pk,
            tenant_id=None,
            tenant_name="Leerstand",
            living_area=40,
            months=12,
            units=480,
            allocated_cost=Decimal("480.00"),
            prepayment=Decimal("500"),
            balance=Decimal(balance),
        )

    def test_save_for_year_replaces_previous_results(self):
        AllocationStorageService.save_for_year(2024, [self._result("10.00")])
        AllocationStorageService.save_for_year(2024, [self._result("20.00")])
        AllocationStorageService.save_for_year(2023, [self._result("5.00")])

        stored = AllocationStorageService.get_for_year(2024)
        self.assertEqual(len(stored), 1)
        self.assertEqual(stored[0].balance, Decimal("20.00"))
        self.assertEqual(stored[0].prepayment, Decimal("500.00"))
        self.assertEqual(AllocationRecord.objects.count(), 2)


class SettlementRunServiceTests(TestCase):
    def setUp(self):
        self.tenant = Tenant.objects.create(name="Anna Huber")
        self.small = Apartment.objects.create(
            address="Hauptstraße 1/1",
            living_area=50,
            annual_prepayment=Decimal("999.00"),
            current_tenant=self.tenant,
        )
        self.large = Apartment.objects.create(
            address="Hauptstraße 1/2",
            living_area=100,
            annual_prepayment=Decimal("600.00"),
        )
        CostType.objects.create(label="Müllabfuhr", amount=Decimal("500.00"))
        CostType.objects.create(label="Hausbetreuung", amount=Decimal("400.00"))
        PrepaymentPeriod.objects.create(
            apartment=self.small,
            monthly_amount=Decimal("30.00"),
            start_date=date(2024, 1, 1),
            end_date=date(2024, 12, 31),
        )

    def _use_periods(self, apartment, year=2024):
        ApartmentYearSetting.objects.create(
            apartment=apartment,
            year=year,
            prepayment_mode=ApartmentYearSetting.PrepaymentMode.PERIODS,
        )

    def test_calculate_uses_periods_only_in_period_mode(self):
        run = SettlementRunService(year=2024).calculate()
        small, large = run.results
        # Standardmodus: Perioden werden ignoriert, Jahresbetrag gilt
        self.assertEqual(small.prepayment, Decimal("999.00"))

        self._use_periods(self.small)
        run = SettlementRunService(year=2024).calculate()
        small, large = run.results

        self.assertEqual(run.warnings, [])
        self.assertEqual((small.units, large.units), (600, 1200))
        self.assertEqual(small.allocated_cost, Decimal("300.00"))
        self.assertEqual(small.prepayment, Decimal("360.00"))
        self.assertEqual(small.balance, Decimal("60.00"))
        self.assertEqual(small.tenant_name, "Anna Huber")
        self.assertEqual(large.allocated_cost, Decimal("600.00"))
        self.assertEqual(large.prepayment, Decimal("600.00"))
        self.assertEqual(large.balance, Decimal("0.00"))
        self.assertEqual(large.tenant_name, "Leerstand")
        self.assertEqual(run.total_allocated, Decimal("900.00"))

    def test_occupancy_months_come_from_year_settings(self):
        ApartmentYearSetting.objects.create(apartment=self.large, year=2024, occupancy_months=6)

        run = SettlementRunService(year=2024).calculate()
        small, large = run.results

        self.assertEqual(large.months, 6)
        self.assertEqual(large.units, 600)
        self.assertEqual(large.allocated_cost, Decimal("450.00"))
        self.assertEqual(large.prepayment, Decimal("300.00"))
        self.assertEqual(large.balance, Decimal("-150.00"))
        self.assertEqual(small.months, 12)

    @override_settings(ABRECHNUNG_VACANCY_LABEL="frei")
    def test_vacancy_label_from_settings(self):
        run = SettlementRunService(year=2024).calculate()
        self.assertEqual(run.results[1].tenant_name, "frei")

    def test_calculate_and_save_persists_results(self):
        run = SettlementRunService(year=2024).calculate_and_save()

        self.assertTrue(run.saved)
        records = AllocationRecord.objects.filter(year=2024).order_by("apartment_id")
        self.assertEqual([record.apartment_id for record in records], [self.small.pk, self.large.pk])
        self.assertEqual(records[0].tenant, self.tenant)
        self.assertEqual(records[1].tenant_name, "Leerstand")

    def test_unusable_year_or_data_saves_nothing(self):
        for year in (1899, 2101):
            run = SettlementRunService(year=year).calculate_and_save()
            self.assertEqual(run.results, [])
            self.assertFalse(run.saved)
            self.assertEqual(_codes(run.warnings), [WarningCode.YEAR_OUT_OF_RANGE])

        CostType.objects.all().delete()
        run = SettlementRunService(year=2024).calculate_and_save()
        self.assertEqual(_codes(run.warnings), [WarningCode.NO_COST_TYPES])
        self.assertFalse(AllocationRecord.objects.exists())

    def test_first_owner_heads_the_run(self):
        self.assertIsNone(SettlementRunService(year=2024).calculate().owner)

        first = Owner.objects.create(
            name="Maria Gruber",
            property_name="EZ 123, KG Innere Stadt",
            settlement_period="01.01.–31.12.",
        )
        Owner.objects.create(name="Zweiter Eigentümer", settlement_period="Kalenderjahr")

        owner = SettlementRunService(year=2024).calculate().owner
        self.assertEqual(owner.id, first.pk)
        self.assertEqual(owner.name, "Maria Gruber")
        self.assertEqual(owner.property_name, "EZ 123, KG Innere Stadt")
        self.assertEqual(str(first), "Maria Gruber (EZ 123, KG Innere Stadt)")

    def test_injected_data_source(self):
        class FixedSource:
            def list_apartments(self):
                return [ApartmentData(id=1, living_area=50, annual_prepayment=Decimal("1200"))]

            def list_tenants(self):
                return [TenantData(id=1, name="Unbenutzt")]

            def list_cost_types(self):
                return [CostTypeData(id=1, label="Wasser", amount=Decimal("1200"))]

            def occupancy_months_by_apartment(self, year):
                return {1: 6}

            def active_periods(self, year):
                return []

            def first_owner(self):
                return None

        run = SettlementRunService(year=2024, data_source=FixedSource()).calculate()
        result = run.results[0]
        self.assertEqual(result.units, 300)
        self.assertEqual(result.allocated_cost, Decimal("1200.00"))
        self.assertEqual(result.prepayment, Decimal("600.00"))
        self.assertEqual(result.balance, Decimal("-600.00"))


class StatementExportServiceTests(TestCase):
    def test_format_money_at(self):
        self.assertEqual(StatementExportService.format_money_at(Decimal("1234.5")), "1.234,50")
        self.assertEqual(StatementExportService.format_money_at(Decimal("-150")), "-150,00")

    def test_build_csv_contains_rows_and_totals(self):
        apartment = Apartment.objects.create(address="Gasse 3", living_area=40, annual_prepayment=Decimal("100"))
        CostType.objects.create(label="Strom", amount=Decimal("480.00"))

        run = SettlementRunService(year=2024).calculate()
        lines = StatementExportService.build_csv(run).strip().splitlines()

        self.assertEqual(lines[0], ";".join(StatementExportService.FIELDNAMES))
        self.assertEqual(lines[1], f"{apartment.pk};Leerstand;40;12;480;480,00;100,00;-380,00;Nachzahlung")
        self.assertEqual(lines[2], "Summe;;;;480;480,00;100,00;-380,00;")

    def test_build_csv_starts_with_owner_header(self):
        Apartment.objects.create(address="Gasse 3", living_area=40)
        CostType.objects.create(label="Strom", amount=Decimal("480.00"))
        Owner.objects.create(name="Maria Gruber", settlement_period="01.01.–31.12.")

        run = SettlementRunService(year=2024).calculate()
        lines = StatementExportService.build_csv(run).splitlines()

        self.assertEqual(
            lines[:4],
            ["Eigentümer;Maria Gruber", "Abrechnungsperiode;01.01.–31.12.", "Jahr;2024", ""],
        )
        self.assertEqual(lines[4], ";".join(StatementExportService.FIELDNAMES))


class ComputeSettlementCommandTests(TestCase):
    def setUp(self):
        self.apartment = Apartment.objects.create(
            address="Hauptstraße 1/1",
            living_area=50,
            annual_prepayment=Decimal("1300.00"),
        )
        CostType.objects.create(label="Müllabfuhr", amount=Decimal("1200.00"))

    def test_dry_run_does_not_save(self):
        out = StringIO()
        call_command("compute_settlement", "--jahr", "2024", stdout=out)

        output = out.getvalue()
        self.assertIn("Umlage 1.200,00", output)
        self.assertIn("Ergebnis 100,00 (Guthaben)", output)
        self.assertIn("Dry-Run", output)
        self.assertIn("Kein Eigentümer erfasst", output)
        self.assertFalse(AllocationRecord.objects.exists())

    def test_header_names_the_owner(self):
        Owner.objects.create(
            name="Maria Gruber",
            property_name="EZ 123",
            settlement_period="01.01.–31.12.",
        )
        out = StringIO()
        call_command("compute_settlement", "--jahr", "2024", stdout=out)

        self.assertIn(
            "Eigentümer: Maria Gruber | Grundstück: EZ 123 | Abrechnungsperiode: 01.01.–31.12. | Jahr: 2024",
            out.getvalue(),
        )
        self.assertNotIn("Kein Eigentümer erfasst", out.getvalue())

    def test_apply_saves_and_writes_csv(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            csv_path = Path(tmp_dir) / "export" / "abrechnung-2024.csv"
            out = StringIO()
            call_command("compute_settlement", "--jahr", "2024", "--apply", "--csv", str(csv_path), stdout=out)

            self.assertTrue(csv_path.exists())
            self.assertIn("Guthaben", csv_path.read_text(encoding="utf-8"))
        self.assertEqual(AllocationRecord.objects.filter(year=2024).count(), 1)
        self.assertIn("1 Wohnungskosten für 2024 gespeichert.", out.getvalue())

    def test_reports_warnings_when_nothing_can_be_computed(self):
        out = StringIO()
        call_command("compute_settlement", "--jahr", "1800", stdout=out)
        self.assertIn("ungewöhnliches Jahr 1800", out.getvalue())
        self.assertIn("Keine Abrechnung für 1800 möglich.", out.getvalue())


class ReplacePrepaymentPeriodsCommandTests(TestCase):
    def setUp(self):
        self.apartment = Apartment.objects.create(address="Hauptstraße 1/1", living_area=50)
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp_dir.cleanup)

    def _write(self, payload) -> str:
        path = Path(self.tmp_dir.name) / "perioden.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return str(path)

    def test_imports_periods_and_switches_mode(self):
        path = self._write(
            [
                {"monthly_amount": "50.00", "start_date": "2024-01-01", "end_date": "2024-06-30"},
                {"monthly_amount": "60.00", "start_date": "2024-07-01", "end_date": "2024-12-31"},
                {"monthly_amount": "70.00", "start_date": "2024-12-01", "end_date": "2024-11-01"},
            ]
        )
        out = StringIO()
        call_command(
            "replace_prepayment_periods",
            "--wohnung",
            str(self.apartment.pk),
            "--jahr",
            "2024",
            "--datei",
            path,
            stdout=out,
        )

        self.assertIn("Gespeicherte Perioden: 2", out.getvalue())
        self.assertIn("Warnung:", out.getvalue())
        self.assertEqual(PrepaymentPeriod.objects.filter(apartment=self.apartment).count(), 2)
        self.assertEqual(
            ApartmentYearSetting.objects.get(apartment=self.apartment, year=2024).prepayment_mode,
            ApartmentYearSetting.PrepaymentMode.PERIODS,
        )

    def test_reset(self):
        PrepaymentPeriod.objects.create(
            apartment=self.apartment,
            monthly_amount=Decimal("50.00"),
            start_date=date(2024, 1, 1),
            end_date=date(2024, 12, 31),
        )
        out = StringIO()
        call_command(
            "replace_prepayment_periods",
            "--wohnung",
            str(self.apartment.pk),
            "--jahr",
            "2024",
            "--reset",
            stdout=out,
        )
        self.assertFalse(PrepaymentPeriod.objects.exists())
        self.assertIn("auf Pauschalbetrag zurückgesetzt", out.getvalue())

    def test_rejects_malformed_file(self):
        bad_json = Path(self.tmp_dir.name) / "kaputt.json"
        bad_json.write_text("{not json", encoding="utf-8")
        with self.assertRaises(CommandError):
            call_command(
                "replace_prepayment_periods",
                "--wohnung",
                str(self.apartment.pk),
                "--jahr",
                "2024",
                "--datei",
                str(bad_json),
                stdout=StringIO(),
            )

        missing_field = self._write([{"monthly_amount": "50.00", "start_date": "2024-01-01"}])
        with self.assertRaises(CommandError):
            call_command(
                "replace_prepayment_periods",
                "--wohnung",
                str(self.apartment.pk),
                "--jahr",
                "2024",
                "--datei",
                missing_field,
                stdout=StringIO(),
            )
