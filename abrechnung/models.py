from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords

from .services.periods import MAX_PERIOD_MONTHS, MAX_YEAR, MIN_YEAR, inclusive_month_count


class Owner(models.Model):
    property_name = models.CharField(max_length=255, blank=True, verbose_name=_("Grundstück"))
    name = models.CharField(max_length=255, verbose_name=_("Name"))
    settlement_period = models.CharField(
        max_length=255,
        verbose_name=_("Abrechnungsperiode"),
        help_text=_("Freitext für den Kopf der Abrechnung, z. B. 01.01.–31.12."),
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Erstellt am"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Aktualisiert am"))

    class Meta:
        verbose_name = _("Eigentümer")
        verbose_name_plural = _("Eigentümer")
        ordering = ["id"]

    def __str__(self) -> str:
        if self.property_name:
            return f"{self.name} ({self.property_name})"
        return self.name


class Tenant(models.Model):
    name = models.CharField(max_length=255, verbose_name=_("Name"))
    email = models.EmailField(blank=True, verbose_name=_("E-Mail"))
    phone = models.CharField(
        max_length=50,
        blank=True,
        validators=[
            RegexValidator(
                regex=r'^\+?\d+$',
                message=_("Telefon darf nur Ziffern enthalten, optional mit führendem +."),
            )
        ],
        verbose_name=_("Telefon"),
    )
    notes = models.TextField(blank=True, verbose_name=_("Notizen"))

    class Meta:
        verbose_name = _("Mieter")
        verbose_name_plural = _("Mieter")
        ordering = ["name", "id"]

    def __str__(self) -> str:
        return self.name


class Apartment(models.Model):
    address = models.CharField(max_length=255, verbose_name=_("Adresse"))
    # Bewusst ohne DB-Constraint: negative Altdaten werden von der Umlage als 0 behandelt.
    living_area = models.IntegerField(
        validators=[MinValueValidator(0)],
        verbose_name=_("Wohnfläche (m²)"),
    )
    annual_prepayment = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_("Vorauszahlung pro Jahr"),
        help_text=_("Pauschale Jahresvorauszahlung, wird nach Monaten anteilig gerechnet."),
    )
    current_tenant = models.ForeignKey(
        Tenant,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="apartments",
        verbose_name=_("Aktueller Mieter"),
    )

    class Meta:
        verbose_name = _("Wohnung")
        verbose_name_plural = _("Wohnungen")
        ordering = ["id"]

    def __str__(self) -> str:
        return self.address


class CostType(models.Model):
    label = models.CharField(max_length=255, verbose_name=_("Bezeichnung"))
    description = models.CharField(max_length=255, blank=True, verbose_name=_("Beschreibung"))
    amount = models.DecimalField(max_digits=10, decimal_places=2, verbose_name=_("Summe"))

    class Meta:
        verbose_name = _("Kostenart")
        verbose_name_plural = _("Kostenarten")
        ordering = ["label", "id"]

    def __str__(self) -> str:
        return f"{self.label} ({self.amount})"


class PrepaymentPeriod(models.Model):
    apartment = models.ForeignKey(
        Apartment,
        on_delete=models.CASCADE,
        related_name="prepayment_periods",
        verbose_name=_("Wohnung"),
    )
    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="prepayment_periods",
        verbose_name=_("Mieter"),
    )
    monthly_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        verbose_name=_("Betrag pro Monat"),
    )
    start_date = models.DateField(verbose_name=_("Von"))
    end_date = models.DateField(verbose_name=_("Bis"))
    history = HistoricalRecords()

    class Meta:
        verbose_name = _("Vorauszahlungsperiode")
        verbose_name_plural = _("Vorauszahlungsperioden")
        ordering = ["apartment_id", "start_date", "id"]
        indexes = [
            models.Index(
                fields=["apartment", "start_date", "end_date"],
                name="idx_vzperiode_wohnung_zeitraum",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.apartment} · {self.start_date:%m.%Y}–{self.end_date:%m.%Y} · {self.monthly_amount}"

    def clean(self):
        super().clean()
        errors = {}
        if self.monthly_amount is not None and self.monthly_amount < Decimal("0.00"):
            errors["monthly_amount"] = _("Der Monatsbetrag darf nicht negativ sein.")
        if self.start_date and self.end_date:
            if self.end_date < self.start_date:
                errors["end_date"] = _("Das Enddatum darf nicht vor dem Startdatum liegen.")
            elif inclusive_month_count(self.start_date, self.end_date) > MAX_PERIOD_MONTHS:
                errors["end_date"] = _("Eine Periode darf höchstens 240 Monate umfassen.")
        if errors:
            raise ValidationError(errors)


class ApartmentYearSetting(models.Model):
    class PrepaymentMode(models.TextChoices):
        STANDARD = "standard", _("Pauschal (Jahresbetrag)")
        PERIODS = "perioden", _("Zeitliche Perioden")

    apartment = models.ForeignKey(
        Apartment,
        on_delete=models.CASCADE,
        related_name="year_settings",
        verbose_name=_("Wohnung"),
    )
    year = models.PositiveIntegerField(
        validators=[MinValueValidator(MIN_YEAR), MaxValueValidator(MAX_YEAR)],
        verbose_name=_("Jahr"),
    )
    occupancy_months = models.PositiveSmallIntegerField(
        default=12,
        validators=[MaxValueValidator(12)],
        verbose_name=_("Monate"),
        help_text=_("Bewohnte Monate im Abrechnungsjahr (0 bis 12)."),
    )
    prepayment_mode = models.CharField(
        max_length=20,
        choices=PrepaymentMode.choices,
        default=PrepaymentMode.STANDARD,
        verbose_name=_("Vorauszahlungs-Modus"),
    )

    class Meta:
        verbose_name = _("Jahreseinstellung Wohnung")
        verbose_name_plural = _("Jahreseinstellungen Wohnungen")
        ordering = ["-year", "apartment_id"]
        constraints = [
            models.UniqueConstraint(
                fields=["apartment", "year"],
                name="uniq_jahreseinstellung_wohnung_jahr",
            )
        ]

    def __str__(self) -> str:
        return f"{self.apartment} · {self.year}"


class AllocationRecord(models.Model):
    year = models.PositiveIntegerField(db_index=True, verbose_name=_("Jahr"))
    apartment = models.ForeignKey(
        Apartment,
        on_delete=models.CASCADE,
        related_name="allocation_records",
        verbose_name=_("Wohnung"),
    )
    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="allocation_records",
        verbose_name=_("Mieter"),
    )
    tenant_name = models.CharField(max_length=255, verbose_name=_("Mietername"))
    living_area = models.IntegerField(verbose_name=_("Wohnfläche (m²)"))
    months = models.PositiveSmallIntegerField(verbose_name=_("Monate"))
    units = models.IntegerField(verbose_name=_("Einheiten"))
    allocated_cost = models.DecimalField(max_digits=12, decimal_places=2, verbose_name=_("Umlage"))
    prepayment = models.DecimalField(max_digits=12, decimal_places=2, verbose_name=_("Vorauszahlung"))
    balance = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        verbose_name=_("Ergebnis"),
        help_text=_("Positiv = Guthaben, negativ = Nachzahlung."),
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Erstellt am"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Aktualisiert am"))

    class Meta:
        verbose_name = _("Wohnungskosten")
        verbose_name_plural = _("Wohnungskosten")
        ordering = ["-year", "apartment_id"]
        constraints = [
            models.UniqueConstraint(
                fields=["apartment", "year"],
                name="uniq_wohnungskosten_wohnung_jahr",
            )
        ]

    def __str__(self) -> str:
        return f"{self.apartment} · {self.year} · {self.balance}"
