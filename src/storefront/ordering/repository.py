"""Repository for the Order aggregate."""

from storefront.domain import storefront
from storefront.ordering.order import Order


@storefront.repository(part_of=Order)
class OrderRepository:
    def all_orders(self) -> list[Order]:
        return self._dao.query.all().items

    def with_status(self, status: str) -> list[Order]:
        return self._dao.query.filter(status=status).all().items
