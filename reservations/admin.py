from django.contrib import admin

from reservations.models import Reservation


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ["id", "book", "borrower", "reservation_date", "status", "loan"]
    list_filter = ["status", "reservation_date"]
    search_fields = ["borrower__email", "book__title"]
    readonly_fields = ["book", "borrower", "reservation_date", "status", "loan"]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
