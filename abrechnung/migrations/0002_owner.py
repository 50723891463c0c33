from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("abrechnung", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Owner",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("property_name", models.CharField(blank=True, max_length=255, verbose_name="Grundstück")),
                ("name", models.CharField(max_length=255, verbose_name="Name")),
                (
                    "settlement_period",
                    models.CharField(
                        help_text="Freitext für den Kopf der Abrechnung, z. B. 01.01.–31.12.",
                        max_length=255,
                        verbose_name="Abrechnungsperiode",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Erstellt am")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Aktualisiert am")),
            ],
            options={
                "verbose_name": "Eigentümer",
                "verbose_name_plural": "Eigentümer",
                "ordering": ["id"],
            },
        ),
    ]
