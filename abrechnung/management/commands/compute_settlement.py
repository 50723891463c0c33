from __future__ import annotations

from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from abrechnung.services.settlement_run_service import SettlementRunService
from abrechnung.services.statement_export_service import StatementExportService


class Command(BaseCommand):
    help = (
        "Berechnet die Betriebskostenabrechnung eines Jahres "
        "(Umlage nach Wohnfläche x Monate, Abgleich der Vorauszahlungen)."
    )

    def add_arguments(self, parser):
        parser.add_argument("--jahr", type=int, required=True, help="Abrechnungsjahr (YYYY).")
        parser.add_argument(
            "--apply",
            action="store_true",
            help="Speichert die Ergebnisse als Wohnungskosten. Ohne --apply nur Vorschau.",
        )
        parser.add_argument("--csv", type=str, help="Optionaler Zielpfad für einen CSV-Export.")

    def handle(self, *args, **options):
        year = int(options["jahr"])
        service = SettlementRunService(year=year)
        run = service.calculate_and_save() if options.get("apply") else service.calculate()

        for warning in run.warnings:
            self.stdout.write(self.style.WARNING(f"Warnung: {warning.message}"))

        if not run.results:
            self.stdout.write(self.style.WARNING(f"Keine Abrechnung für {year} möglich."))
            return

        if run.owner is None:
            self.stdout.write(self.style.WARNING("Kein Eigentümer erfasst - Kopf der Abrechnung bleibt leer."))
        self.stdout.write(
            " | ".join(f"{label}: {value}" for label, value in StatementExportService.header_lines(run))
        )

        money = StatementExportService.format_money_at
        for result in run.results:
            self.stdout.write(
                f"- Wohnung #{result.apartment_id} [{result.tenant_name}] "
                f"{result.months} Monate, {result.units} Einheiten | "
                f"Umlage {money(result.allocated_cost)} | "
                f"Vorauszahlung {money(result.prepayment)} | "
                f"Ergebnis {money(result.balance)} "
                f"({StatementExportService.balance_label(result.balance)})"
            )
        self.stdout.write(
            f"Summe Umlage: {money(run.total_allocated)} | "
            f"Summe Vorauszahlung: {money(run.total_prepayment)} | "
            f"Summe Ergebnis: {money(run.total_balance)}"
        )

        csv_path = (options.get("csv") or "").strip()
        if csv_path:
            path = self._resolve_output_path(csv_path)
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(StatementExportService.build_csv(run), encoding="utf-8")
            except OSError as exc:
                raise CommandError(f"CSV-Export fehlgeschlagen: {exc}") from exc
            self.stdout.write(self.style.SUCCESS(f"CSV-Export erstellt: {path}"))

        if run.saved:
            self.stdout.write(self.style.SUCCESS(f"{len(run.results)} Wohnungskosten für {year} gespeichert."))
        else:
            self.stdout.write(
                self.style.WARNING("Dry-Run: Keine Daten gespeichert. Mit --apply werden Ergebnisse gespeichert.")
            )

    @staticmethod
    def _resolve_output_path(raw_path: str) -> Path:
        path = Path(raw_path).expanduser()
        if not path.is_absolute():
            path = Path.cwd() / path
        return path
