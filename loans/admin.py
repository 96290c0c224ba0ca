from django.contrib import admin

from loans.models import Loan


@admin.register(Loan)
class LoanAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "book",
        "borrower",
        "loan_date",
        "due_date",
        "return_date",
        "status",
    ]
    list_filter = ["status", "loan_date", "due_date"]
    search_fields = ["borrower__email", "book__title", "book__author"]
    # Copy counts move only through the loan services
    readonly_fields = ["book", "borrower", "loan_date", "return_date", "status"]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
