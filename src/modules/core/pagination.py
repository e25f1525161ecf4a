from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """Page-number pagination; ``page_size`` defaults to ``DEFAULT_PAGE_SIZE``."""

    page_size_query_param = "page_size"
    max_page_size = 100
