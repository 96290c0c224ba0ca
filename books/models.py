from django.core.validators import MinValueValidator
from django.db import models, transaction

from library_service.exceptions import InvariantViolation


class CatalogManager(models.Manager):
    """Books visible in the catalog (archived books are hidden)."""

    def get_queryset(self):
        return super().get_queryset().filter(is_archived=False)


class Book(models.Model):
    class Status(models.TextChoices):
        AVAILABLE = "available", "Available"
        UNAVAILABLE = "unavailable", "Unavailable"
        MAINTENANCE = "maintenance", "Maintenance"
        RESERVED = "reserved", "Reserved"

    class Location(models.TextChoices):
        KAMBOINSE = "kamboinse", "Kamboinsé"
        OUAGA = "ouaga", "Ouaga"

    class DocumentType(models.TextChoices):
        PRINTED = "texte_imprime", "Printed text"
        ELECTRONIC = "document_electronique", "Electronic document"
        MULTIMEDIA = "multimedia", "Multimedia"
        SOUND = "enregistrement_sonore", "Sound recording"

    title = models.CharField(max_length=255)
    author = models.CharField(max_length=255)
    publisher = models.CharField(max_length=255, blank=True)
    isbn = models.CharField(max_length=20, blank=True)
    year = models.PositiveIntegerField(null=True, blank=True)
    description = models.TextField(blank=True)
    specialization = models.CharField(max_length=100)
    language = models.CharField(max_length=50, blank=True)
    document_type = models.CharField(
        max_length=32, choices=DocumentType.choices, default=DocumentType.PRINTED
    )
    cover_url = models.URLField(max_length=500, blank=True)
    location = models.CharField(max_length=16, choices=Location.choices)
    total_copies = models.PositiveIntegerField(
        default=1, validators=[MinValueValidator(1)]
    )
    available_copies = models.PositiveIntegerField(default=1)
    status = models.CharField(
        max_length=16, choices=Status.choices, default=Status.AVAILABLE
    )
    is_archived = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CatalogManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["title", "author"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_copies__gte=1), name="book_total_copies_positive"
            ),
            models.CheckConstraint(
                condition=models.Q(available_copies__gte=0)
                & models.Q(available_copies__lte=models.F("total_copies")),
                name="book_available_copies_in_range",
            ),
        ]

    def __str__(self):
        return f"{self.title} by {self.author}"

    @property
    def copies_on_loan(self):
        return self.total_copies - self.available_copies

    @property
    def is_available(self):
        """Borrowable: free copies and no status veto."""
        return self.available_copies > 0 and self.status == self.Status.AVAILABLE

    @property
    def accepts_promotion(self):
        """Returned copies may go to waiting reservations."""
        return self.status in (self.Status.AVAILABLE, self.Status.RESERVED)

    @transaction.atomic
    def adjust_availability(self, delta):
        """
        Atomically apply available_copies += delta.

        The update only matches while the result stays inside
        [0, total_copies]; otherwise nothing is written and
        InvariantViolation is raised.
        """
        queryset = Book.all_objects.filter(pk=self.pk)
        if delta < 0:
            queryset = queryset.filter(available_copies__gte=-delta)
        else:
            queryset = queryset.filter(
                available_copies__lte=models.F("total_copies") - delta
            )

        updated = queryset.update(available_copies=models.F("available_copies") + delta)
        if not updated:
            self.refresh_from_db(fields=["available_copies", "total_copies"])
            raise InvariantViolation(
                f"Cannot change availability of book {self.pk} by {delta}: "
                f"{self.available_copies} of {self.total_copies} copies available."
            )
        self.refresh_from_db(fields=["available_copies", "total_copies"])

    def set_total_copies(self, total_copies):
        """Change the copy count, keeping every copy on loan accounted for."""
        on_loan = self.copies_on_loan
        if total_copies < on_loan:
            raise InvariantViolation(
                f"Book {self.pk} has {on_loan} copies on loan; "
                f"cannot lower total copies to {total_copies}."
            )
        self.total_copies = total_copies
        self.available_copies = total_copies - on_loan
