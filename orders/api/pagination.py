import math

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class OrderPagination(PageNumberPagination):
    page_size = 10
    page_size_query_param = "limit"
    max_page_size = 100

    def get_paginated_response(self, data):
        total = self.page.paginator.count
        limit = self.page.paginator.per_page
        return Response({
            "orders": data,
            "total": total,
            "page": self.page.number,
            "totalPages": math.ceil(total / limit) if limit else 0,
        })
