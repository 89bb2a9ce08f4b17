from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from django.core.paginator import Page, Paginator
from django.db.models import F, QuerySet

from .. import conf
from ..models import Property


@dataclass(frozen=True)
class ListingFilters:
    """Value object holding filter parameters for listing queries."""

    city: str = ""
    property_type: str = ""
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    gender_preference: str = ""
    sort: str = "newest"


class ListingQueryService:
    """Encapsulates the filtering, ordering and paging of available listings."""

    SORT_ORDERS = {
        "newest": ("-created_at", "-id"),
        "price_asc": ("price", "-created_at", "-id"),
        "price_desc": ("-price", "-created_at", "-id"),
        "rating": ("-average_rating", "-total_reviews", "-created_at", "-id"),
    }
    DEFAULT_SORT = "newest"

    def __init__(self, base_queryset: QuerySet | None = None) -> None:
        self.base_queryset = base_queryset if base_queryset is not None else Property.objects.all()

    def build_filters(self, data: Mapping[str, Any]) -> ListingFilters:
        """Return validated filter parameters from raw request data.

        Accepts the short query names used by the listing page (``type``,
        ``gender``, ``minPrice``/``maxPrice``) as well as the field names.
        """

        def first(*keys: str) -> str:
            for key in keys:
                value = data.get(key)
                if value not in (None, ""):
                    return str(value).strip()
            return ""

        sort = first("sort")
        return ListingFilters(
            city=first("city"),
            property_type=first("property_type", "type"),
            min_price=self._parse_price(first("min_price", "minPrice")),
            max_price=self._parse_price(first("max_price", "maxPrice")),
            gender_preference=first("gender_preference", "gender"),
            sort=sort if sort in self.SORT_ORDERS else self.DEFAULT_SORT,
        )

    def get_catalog(self, filters: ListingFilters) -> QuerySet:
        """Apply filters and return the ordered queryset of available properties."""

        queryset = self.base_queryset.filter(is_available=True)
        if filters.city:
            queryset = queryset.filter(city__icontains=filters.city)
        if filters.property_type:
            queryset = queryset.filter(property_type=filters.property_type)
        if filters.gender_preference:
            queryset = queryset.filter(gender_preference=filters.gender_preference)
        if filters.min_price is not None:
            queryset = queryset.filter(price__gte=filters.min_price)
        if filters.max_price is not None:
            queryset = queryset.filter(price__lte=filters.max_price)

        ordering = self.SORT_ORDERS.get(filters.sort, self.SORT_ORDERS[self.DEFAULT_SORT])
        return queryset.prefetch_related("images", "room_types").order_by(*ordering)

    def paginate(self, queryset: QuerySet, page: Any = 1, page_size: Any = None) -> Page:
        paginator = Paginator(queryset, self._page_size(page_size))
        return paginator.get_page(page)

    def search(self, data: Mapping[str, Any]) -> tuple[ListingFilters, Page]:
        filters = self.build_filters(data)
        page = self.paginate(self.get_catalog(filters), data.get("page", 1), data.get("page_size"))
        return filters, page

    def record_view(self, listing: Property) -> None:
        Property.objects.filter(pk=listing.pk).update(views=F("views") + 1)
        listing.refresh_from_db(fields=["views"])

    @staticmethod
    def available_cities() -> Iterable[str]:
        return (
            Property.objects.filter(is_available=True)
            .order_by("city")
            .values_list("city", flat=True)
            .distinct()
        )

    @staticmethod
    def _parse_price(raw: str) -> Decimal | None:
        if not raw:
            return None
        try:
            value = Decimal(raw)
        except (InvalidOperation, TypeError):
            return None
        return value if value.is_finite() else None

    @staticmethod
    def _page_size(raw: Any) -> int:
        default = conf.listing_page_size()
        try:
            size = int(raw) if raw not in (None, "") else default
        except (TypeError, ValueError):
            size = default
        if size < 1:
            size = default
        return min(size, conf.listing_max_page_size())
