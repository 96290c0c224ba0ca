from rest_framework import serializers

from reservations.models import Reservation


class ReservationCreateSerializer(serializers.Serializer):
    book = serializers.IntegerField()


class ReservationSerializer(serializers.ModelSerializer):
    book_title = serializers.CharField(source="book.title", read_only=True)
    book_author = serializers.CharField(source="book.author", read_only=True)
    book_location = serializers.CharField(source="book.location", read_only=True)
    borrower_email = serializers.CharField(source="borrower.email", read_only=True)
    queue_position = serializers.IntegerField(read_only=True)

    class Meta:
        model = Reservation
        fields = [
            "id",
            "book_id",
            "book_title",
            "book_author",
            "book_location",
            "borrower_id",
            "borrower_email",
            "reservation_date",
            "status",
            "queue_position",
            "loan_id",
            "updated_at",
        ]


class ReservationQueueSerializer(serializers.ModelSerializer):
    """Public view of a waiting queue: no borrower details"""

    class Meta:
        model = Reservation
        fields = ["id", "reservation_date", "status"]
