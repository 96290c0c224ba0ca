from rest_framework import serializers

from books.models import Book


class BookSerializer(serializers.ModelSerializer):
    is_available = serializers.BooleanField(read_only=True)
    average_rating = serializers.SerializerMethodField()
    reviews_count = serializers.SerializerMethodField()

    class Meta:
        model = Book
        fields = [
            "id",
            "title",
            "author",
            "publisher",
            "isbn",
            "year",
            "description",
            "specialization",
            "language",
            "document_type",
            "cover_url",
            "location",
            "total_copies",
            "available_copies",
            "status",
            "is_available",
            "average_rating",
            "reviews_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "available_copies", "created_at", "updated_at"]
        extra_kwargs = {
            "total_copies": {"min_value": 1},
        }

    def get_average_rating(self, obj):
        average = getattr(obj, "average_rating", None)
        return round(average, 2) if average is not None else None

    def get_reviews_count(self, obj):
        return getattr(obj, "reviews_count", 0)

    def validate_title(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Title cannot be blank.")
        return value

    def validate_author(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Author cannot be blank.")
        return value

    def validate_total_copies(self, value):
        """A copy count cannot drop below the copies currently on loan"""
        if self.instance is not None and value < self.instance.copies_on_loan:
            raise serializers.ValidationError(
                f"{self.instance.copies_on_loan} copies are on loan; "
                f"total copies cannot be lower."
            )
        return value


class BookListSerializer(serializers.ModelSerializer):
    """Compact serializer for catalog listings"""

    is_available = serializers.BooleanField(read_only=True)
    average_rating = serializers.SerializerMethodField()

    class Meta:
        model = Book
        fields = [
            "id",
            "title",
            "author",
            "specialization",
            "location",
            "language",
            "document_type",
            "cover_url",
            "total_copies",
            "available_copies",
            "status",
            "is_available",
            "average_rating",
        ]

    def get_average_rating(self, obj):
        average = getattr(obj, "average_rating", None)
        return round(average, 2) if average is not None else None
