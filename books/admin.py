from django.contrib import admin

from books.models import Book


@admin.register(Book)
class BookAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "title",
        "author",
        "specialization",
        "location",
        "status",
        "available_copies",
        "total_copies",
        "is_archived",
    ]
    list_filter = ["status", "location", "document_type", "is_archived"]
    search_fields = ["title", "author", "isbn"]
    readonly_fields = ["available_copies", "created_at", "updated_at"]

    def get_queryset(self, request):
        return Book.all_objects.all()
