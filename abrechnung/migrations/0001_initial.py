import django.core.validators
import django.db.models.deletion
import simple_history.models
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Tenant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255, verbose_name="Name")),
                ("email", models.EmailField(blank=True, max_length=254, verbose_name="E-Mail")),
                (
                    "phone",
                    models.CharField(
                        blank=True,
                        max_length=50,
                        validators=[
                            django.core.validators.RegexValidator(
                                message="Telefon darf nur Ziffern enthalten, optional mit führendem +.",
                                regex="^\\+?\\d+$",
                            )
                        ],
                        verbose_name="Telefon",
                    ),
                ),
                ("notes", models.TextField(blank=True, verbose_name="Notizen")),
            ],
            options={
                "verbose_name": "Mieter",
                "verbose_name_plural": "Mieter",
                "ordering": ["name", "id"],
            },
        ),
        migrations.CreateModel(
            name="Apartment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("address", models.CharField(max_length=255, verbose_name="Adresse")),
                (
                    "living_area",
                    models.IntegerField(
                        validators=[django.core.validators.MinValueValidator(0)],
                        verbose_name="Wohnfläche (m²)",
                    ),
                ),
                (
                    "annual_prepayment",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Pauschale Jahresvorauszahlung, wird nach Monaten anteilig gerechnet.",
                        max_digits=10,
                        null=True,
                        verbose_name="Vorauszahlung pro Jahr",
                    ),
                ),
                (
                    "current_tenant",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="apartments",
                        to="abrechnung.tenant",
                        verbose_name="Aktueller Mieter",
                    ),
                ),
            ],
            options={
                "verbose_name": "Wohnung",
                "verbose_name_plural": "Wohnungen",
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="CostType",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("label", models.CharField(max_length=255, verbose_name="Bezeichnung")),
                ("description", models.CharField(blank=True, max_length=255, verbose_name="Beschreibung")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10, verbose_name="Summe")),
            ],
            options={
                "verbose_name": "Kostenart",
                "verbose_name_plural": "Kostenarten",
                "ordering": ["label", "id"],
            },
        ),
        migrations.CreateModel(
            name="PrepaymentPeriod",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("monthly_amount", models.DecimalField(decimal_places=2, max_digits=12, verbose_name="Betrag pro Monat")),
                ("start_date", models.DateField(verbose_name="Von")),
                ("end_date", models.DateField(verbose_name="Bis")),
                (
                    "apartment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="prepayment_periods",
                        to="abrechnung.apartment",
                        verbose_name="Wohnung",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="prepayment_periods",
                        to="abrechnung.tenant",
                        verbose_name="Mieter",
                    ),
                ),
            ],
            options={
                "verbose_name": "Vorauszahlungsperiode",
                "verbose_name_plural": "Vorauszahlungsperioden",
                "ordering": ["apartment_id", "start_date", "id"],
                "indexes": [
                    models.Index(
                        fields=["apartment", "start_date", "end_date"],
                        name="idx_vzperiode_wohnung_zeitraum",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="HistoricalPrepaymentPeriod",
            fields=[
                ("id", models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name="ID")),
                ("monthly_amount", models.DecimalField(decimal_places=2, max_digits=12, verbose_name="Betrag pro Monat")),
                ("start_date", models.DateField(verbose_name="Von")),
                ("end_date", models.DateField(verbose_name="Bis")),
                ("history_id", models.AutoField(primary_key=True, serialize=False)),
                ("history_date", models.DateTimeField(db_index=True)),
                ("history_change_reason", models.CharField(max_length=100, null=True)),
                (
                    "history_type",
                    models.CharField(
                        choices=[("+", "Created"), ("~", "Changed"), ("-", "Deleted")],
                        max_length=1,
                    ),
                ),
                (
                    "apartment",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to="abrechnung.apartment",
                        verbose_name="Wohnung",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to="abrechnung.tenant",
                        verbose_name="Mieter",
                    ),
                ),
                (
                    "history_user",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "historical Vorauszahlungsperiode",
                "verbose_name_plural": "historical Vorauszahlungsperioden",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name="ApartmentYearSetting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "year",
                    models.PositiveIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1900),
                            django.core.validators.MaxValueValidator(2100),
                        ],
                        verbose_name="Jahr",
                    ),
                ),
                (
                    "occupancy_months",
                    models.PositiveSmallIntegerField(
                        default=12,
                        help_text="Bewohnte Monate im Abrechnungsjahr (0 bis 12).",
                        validators=[django.core.validators.MaxValueValidator(12)],
                        verbose_name="Monate",
                    ),
                ),
                (
                    "prepayment_mode",
                    models.CharField(
                        choices=[("standard", "Pauschal (Jahresbetrag)"), ("perioden", "Zeitliche Perioden")],
                        default="standard",
                        max_length=20,
                        verbose_name="Vorauszahlungs-Modus",
                    ),
                ),
                (
                    "apartment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="year_settings",
                        to="abrechnung.apartment",
                        verbose_name="Wohnung",
                    ),
                ),
            ],
            options={
                "verbose_name": "Jahreseinstellung Wohnung",
                "verbose_name_plural": "Jahreseinstellungen Wohnungen",
                "ordering": ["-year", "apartment_id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("apartment", "year"),
                        name="uniq_jahreseinstellung_wohnung_jahr",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="AllocationRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("year", models.PositiveIntegerField(db_index=True, verbose_name="Jahr")),
                ("tenant_name", models.CharField(max_length=255, verbose_name="Mietername")),
                ("living_area", models.IntegerField(verbose_name="Wohnfläche (m²)")),
                ("months", models.PositiveSmallIntegerField(verbose_name="Monate")),
                ("units", models.IntegerField(verbose_name="Einheiten")),
                ("allocated_cost", models.DecimalField(decimal_places=2, max_digits=12, verbose_name="Umlage")),
                ("prepayment", models.DecimalField(decimal_places=2, max_digits=12, verbose_name="Vorauszahlung")),
                (
                    "balance",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Positiv = Guthaben, negativ = Nachzahlung.",
                        max_digits=12,
                        verbose_name="Ergebnis",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Erstellt am")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Aktualisiert am")),
                (
                    "apartment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="allocation_records",
                        to="abrechnung.apartment",
                        verbose_name="Wohnung",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="allocation_records",
                        to="abrechnung.tenant",
                        verbose_name="Mieter",
                    ),
                ),
            ],
            options={
                "verbose_name": "Wohnungskosten",
                "verbose_name_plural": "Wohnungskosten",
                "ordering": ["-year", "apartment_id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("apartment", "year"),
                        name="uniq_wohnungskosten_wohnung_jahr",
                    )
                ],
            },
        ),
    ]
