import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Book",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("author", models.CharField(max_length=255)),
                ("publisher", models.CharField(blank=True, max_length=255)),
                ("isbn", models.CharField(blank=True, max_length=20)),
                ("year", models.PositiveIntegerField(blank=True, null=True)),
                ("description", models.TextField(blank=True)),
                ("specialization", models.CharField(max_length=100)),
                ("language", models.CharField(blank=True, max_length=50)),
                (
                    "document_type",
                    models.CharField(
                        choices=[
                            ("texte_imprime", "Printed text"),
                            ("document_electronique", "Electronic document"),
                            ("multimedia", "Multimedia"),
                            ("enregistrement_sonore", "Sound recording"),
                        ],
                        default="texte_imprime",
                        max_length=32,
                    ),
                ),
                ("cover_url", models.URLField(blank=True, max_length=500)),
                (
                    "location",
                    models.CharField(
                        choices=[("kamboinse", "Kamboinsé"), ("ouaga", "Ouaga")],
                        max_length=16,
                    ),
                ),
                (
                    "total_copies",
                    models.PositiveIntegerField(
                        default=1, validators=[django.core.validators.MinValueValidator(1)]
                    ),
                ),
                ("available_copies", models.PositiveIntegerField(default=1)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("available", "Available"),
                            ("unavailable", "Unavailable"),
                            ("maintenance", "Maintenance"),
                            ("reserved", "Reserved"),
                        ],
                        default="available",
                        max_length=16,
                    ),
                ),
                ("is_archived", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["title", "author"],
            },
        ),
        migrations.AddConstraint(
            model_name="book",
            constraint=models.CheckConstraint(
                condition=models.Q(total_copies__gte=1), name="book_total_copies_positive"
            ),
        ),
        migrations.AddConstraint(
            model_name="book",
            constraint=models.CheckConstraint(
                condition=models.Q(available_copies__gte=0)
                & models.Q(available_copies__lte=models.F("total_copies")),
                name="book_available_copies_in_range",
            ),
        ),
    ]
