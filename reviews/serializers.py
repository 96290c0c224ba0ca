from rest_framework import serializers

from reviews.models import Review


class ReviewSerializer(serializers.ModelSerializer):
    author_name = serializers.CharField(source="loan.borrower.full_name", read_only=True)

    class Meta:
        model = Review
        fields = [
            "id",
            "book_id",
            "loan_id",
            "rating",
            "comment",
            "author_name",
            "created_at",
            "updated_at",
        ]


class ReviewCreateSerializer(serializers.Serializer):
    book = serializers.IntegerField()
    loan = serializers.IntegerField()
    # Range is checked by the review service so it can report InvalidRating
    rating = serializers.IntegerField()
    comment = serializers.CharField(required=False, allow_blank=True, default="")


class ReviewUpdateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(required=False)
    comment = serializers.CharField(required=False, allow_blank=True)
