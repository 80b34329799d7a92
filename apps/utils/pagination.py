from django.conf import settings
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class StandardResultsSetPagination(PageNumberPagination):
    """
    ?page=&limit= pagination answering with
    {"<results_key>": [...], "pagination": {page, limit, total, pages}}.
    """
    page_size_query_param = "limit"
    results_key = "results"

    def __init__(self):
        self.page_size = getattr(settings, "STOCK_PAGE_SIZE", 20)
        self.max_page_size = getattr(settings, "STOCK_MAX_PAGE_SIZE", 100)

    def get_paginated_response(self, data):
        limit = self.page.paginator.per_page
        total = self.page.paginator.count
        return Response({
            self.results_key: data,
            "pagination": {
                "page": self.page.number,
                "limit": limit,
                "total": total,
                "pages": (total + limit - 1) // limit if limit else 0,
            },
        })
