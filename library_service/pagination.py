from django.conf import settings
from rest_framework.pagination import PageNumberPagination


class LibraryPagination(PageNumberPagination):
    """
    Page through catalog and loan listings.

    Clients send ``page`` and ``limit``, the same pair the library web
    dashboard uses; ``limit`` is capped at ``API_MAX_PAGE_SIZE``.
    """

    page_size = settings.API_PAGE_SIZE
    page_size_query_param = "limit"
    max_page_size = settings.API_MAX_PAGE_SIZE
