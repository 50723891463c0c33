from __future__ import annotations

import json
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from abrechnung.services.prepayment_period_service import PrepaymentPeriodService
from abrechnung.services.types import PrepaymentPeriodData


class Command(BaseCommand):
    help = (
        "Ersetzt die Vorauszahlungsperioden einer Wohnung für ein Jahr "
        "(alle Perioden, die das Jahr überlappen) durch die Einträge einer JSON-Datei."
    )

    def add_arguments(self, parser):
        parser.add_argument("--wohnung", type=int, required=True, help="ID der Wohnung.")
        parser.add_argument("--jahr", type=int, required=True, help="Abrechnungsjahr (YYYY).")
        group = parser.add_mutually_exclusive_group(required=True)
        group.add_argument(
            "--datei",
            type=str,
            help=(
                "JSON-Liste mit Perioden: "
                '[{"monthly_amount": "50.00", "start_date": "2024-01-01", "end_date": "2024-06-30"}]'
            ),
        )
        group.add_argument(
            "--reset",
            action="store_true",
            help="Löscht die Perioden des Jahres und stellt auf Pauschalbetrag zurück.",
        )

    def handle(self, *args, **options):
        apartment_id = int(options["wohnung"])
        year = int(options["jahr"])

        if options.get("reset"):
            outcome = PrepaymentPeriodService.reset_to_standard(apartment_id, year)
            self._write_warnings(outcome.warnings)
            if not outcome.warnings:
                self.stdout.write(
                    self.style.SUCCESS(f"Wohnung {apartment_id}: {year} auf Pauschalbetrag zurückgesetzt.")
                )
            return

        periods = self._load_periods(Path(options["datei"]).expanduser(), apartment_id=apartment_id)
        outcome = PrepaymentPeriodService.apply_periods(apartment_id, year, periods)
        self._write_warnings(outcome.warnings)
        self.stdout.write(f"Eingelesene Perioden: {len(periods)}")
        self.stdout.write(self.style.SUCCESS(f"Gespeicherte Perioden: {len(outcome.value)}"))

    def _write_warnings(self, warnings) -> None:
        for warning in warnings:
            self.stdout.write(self.style.WARNING(f"Warnung: {warning.message}"))

    @staticmethod
    def _load_periods(path: Path, *, apartment_id: int) -> list[PrepaymentPeriodData]:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise CommandError(f"Datei konnte nicht gelesen werden: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise CommandError(f"Ungültiges JSON in {path}: {exc}") from exc

        if not isinstance(raw, list):
            raise CommandError("Erwartet wird eine JSON-Liste von Perioden.")

        periods: list[PrepaymentPeriodData] = []
        for index, entry in enumerate(raw, start=1):
            if not isinstance(entry, dict):
                raise CommandError(f"Eintrag {index}: Objekt erwartet.")
            try:
                periods.append(
                    PrepaymentPeriodData(
                        apartment_id=int(entry.get("apartment_id", apartment_id)),
                        tenant_id=int(entry["tenant_id"]) if entry.get("tenant_id") else None,
                        monthly_amount=Decimal(str(entry["monthly_amount"])),
                        start_date=date.fromisoformat(str(entry["start_date"])),
                        end_date=date.fromisoformat(str(entry["end_date"])),
                    )
                )
            except KeyError as exc:
                raise CommandError(f"Eintrag {index}: Feld {exc} fehlt.") from exc
            except (InvalidOperation, TypeError, ValueError) as exc:
                raise CommandError(f"Eintrag {index}: ungültiger Wert ({exc}).") from exc
        return periods
