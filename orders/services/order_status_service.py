import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F

from catalog.models import Product
from orders.models import Order

logger = logging.getLogger(__name__)

PAID_CANCEL_MESSAGE = "Paid order cannot be cancelled (refund not implemented)."


def _locked(order_id: int) -> Order:
    return Order.objects.select_for_update().prefetch_related("items").get(pk=order_id)


def _return_stock(order: Order) -> None:
    for item in order.items.all():
        # product may have been deleted since the order was placed
        if item.product_id is None:
            continue
        Product.objects.filter(pk=item.product_id).update(stock_quantity=F("stock_quantity") + item.quantity)


def _cancel(order: Order) -> Order:
    _return_stock(order)
    order.set_status(Order.STATUS_CANCELLED, save=True)
    logger.info("Order %s cancelled, stock returned", order.order_number)
    return order


class OrderStatusService:

    @staticmethod
    @transaction.atomic
    def update_status(*, order_id: int, new_status: str) -> Order:
        """Admin status change. Cancelling returns stock; paid orders stay uncancellable."""
        order = _locked(order_id)

        if new_status not in dict(Order.STATUS_CHOICES):
            raise ValidationError("Invalid status")
        if new_status == order.status:
            return order

        if new_status == Order.STATUS_CANCELLED:
            if order.is_paid:
                raise ValidationError(PAID_CANCEL_MESSAGE)
            if not order.can_transition_to(new_status):
                raise ValidationError(f"Cannot change status from {order.status} to {new_status}")
            return _cancel(order)

        if not order.can_transition_to(new_status):
            logger.info("Rejected status change for %s: %s -> %s", order.order_number, order.status, new_status)
            raise ValidationError(f"Cannot change status from {order.status} to {new_status}")

        order.set_status(new_status, save=True)
        return order

    @staticmethod
    @transaction.atomic
    def cancel_by_user(*, user, order_id: int) -> Order:
        order = _locked(order_id)

        if order.user_id != user.id and not getattr(user, "is_admin", False):
            raise ValidationError("You do not have permission to cancel this order.")
        if order.status == Order.STATUS_CANCELLED:
            return order
        if order.is_paid:
            raise ValidationError(PAID_CANCEL_MESSAGE)
        if order.status != Order.STATUS_PENDING:
            raise ValidationError("Only pending orders can be cancelled.")

        return _cancel(order)
