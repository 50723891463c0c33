from __future__ import annotations

import csv
import io
from decimal import Decimal

from .rounding import quantize_cent
from .settlement_run_service import SettlementRun


class StatementExportService:
    FIELDNAMES = [
        "wohnung_id",
        "mieter",
        "wohnflaeche",
        "monate",
        "einheiten",
        "umlage",
        "vorauszahlung",
        "ergebnis",
        "art",
    ]

    @staticmethod
    def format_money_at(value: Decimal | str | int | None) -> str:
        amount = quantize_cent(value)
        return f"{amount:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")

    @staticmethod
    def balance_label(balance: Decimal) -> str:
        if balance > Decimal("0"):
            return "Guthaben"
        if balance < Decimal("0"):
            return "Nachzahlung"
        return "Ausgeglichen"

    @staticmethod
    def header_lines(run: SettlementRun) -> list[tuple[str, str]]:
        """Kopfzeilen der Abrechnung; ohne Eigentümer nur das Jahr."""
        lines = []
        if run.owner is not None:
            lines.append(("Eigentümer", run.owner.name))
            if run.owner.property_name:
                lines.append(("Grundstück", run.owner.property_name))
            lines.append(("Abrechnungsperiode", run.owner.settlement_period))
        lines.append(("Jahr", str(run.year)))
        return lines

    @classmethod
    def build_csv(cls, run: SettlementRun) -> str:
        output = io.StringIO()
        if run.owner is not None:
            preamble = csv.writer(output, delimiter=";")
            preamble.writerows(cls.header_lines(run))
            preamble.writerow([])
        writer = csv.DictWriter(output, fieldnames=cls.FIELDNAMES, delimiter=";")
        writer.writeheader()
        for result in run.results:
            writer.writerow(
                {
                    "wohnung_id": result.apartment_id,
                    "mieter": result.tenant_name,
                    "wohnflaeche": result.living_area,
                    "monate": result.months,
                    "einheiten": result.units,
                    "umlage": cls.format_money_at(result.allocated_cost),
                    "vorauszahlung": cls.format_money_at(result.prepayment),
                    "ergebnis": cls.format_money_at(result.balance),
                    "art": cls.balance_label(result.balance),
                }
            )
        writer.writerow(
            {
                "wohnung_id": "Summe",
                "mieter": "",
                "wohnflaeche": "",
                "monate": "",
                "einheiten": sum(result.units for result in run.results),
                "umlage": cls.format_money_at(run.total_allocated),
                "vorauszahlung": cls.format_money_at(run.total_prepayment),
                "ergebnis": cls.format_money_at(run.total_balance),
                "art": "",
            }
        )
        return output.getvalue()
