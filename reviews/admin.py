from django.contrib import admin

from reviews.models import Review


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ["id", "book", "loan", "borrower_email", "rating", "created_at"]
    list_filter = ["rating", "created_at"]
    search_fields = ["book__title", "loan__borrower__email", "comment"]
    readonly_fields = ["book", "loan", "rating", "comment", "created_at", "updated_at"]

    def borrower_email(self, obj):
        return obj.loan.borrower.email

    borrower_email.short_description = "Borrower Email"
