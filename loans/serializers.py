from rest_framework import serializers

from books.serializers import BookListSerializer
from loans.models import Loan


class LoanCreateSerializer(serializers.Serializer):
    book = serializers.IntegerField()
    duration_days = serializers.IntegerField(required=False, min_value=1)
    # Staff only: open the loan on behalf of this borrower
    borrower = serializers.IntegerField(required=False)


class LoanDetailSerializer(serializers.ModelSerializer):
    """Detailed read serializer for Loan with full book information"""

    book = BookListSerializer(read_only=True)
    borrower_email = serializers.CharField(source="borrower.email", read_only=True)
    borrower_name = serializers.CharField(source="borrower.full_name", read_only=True)

    # Calculated fields
    is_overdue = serializers.BooleanField(read_only=True)
    days_overdue = serializers.IntegerField(read_only=True)
    was_returned_late = serializers.BooleanField(read_only=True)
    has_review = serializers.SerializerMethodField()

    class Meta:
        model = Loan
        fields = [
            "id",
            "book",
            "borrower_email",
            "borrower_name",
            "loan_date",
            "due_date",
            "return_date",
            "status",
            "is_overdue",
            "days_overdue",
            "was_returned_late",
            "has_review",
        ]

    def get_has_review(self, obj):
        return hasattr(obj, "review")


class LoanListSerializer(serializers.ModelSerializer):
    """Simplified serializer for listing loans"""

    book_title = serializers.CharField(source="book.title", read_only=True)
    book_author = serializers.CharField(source="book.author", read_only=True)
    borrower_name = serializers.CharField(source="borrower.full_name", read_only=True)
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = Loan
        fields = [
            "id",
            "book_id",
            "book_title",
            "book_author",
            "borrower_id",
            "borrower_name",
            "loan_date",
            "due_date",
            "return_date",
            "status",
            "is_overdue",
        ]
