# orders/services/checkout_service.py
import logging
from collections import OrderedDict
from decimal import Decimal

from django.db import transaction
from django.db.models import F

from cart.models import CartItem
from cart.services.pricing import money, totals_for
from catalog.models import Product
from orders.models import Order, OrderItem, make_order_number

logger = logging.getLogger(__name__)


class ProductUnavailable(ValueError):
    """A requested product does not exist or is inactive."""


def merge_lines(items) -> "OrderedDict[int, int]":
    """Collapse [{product_id, quantity}] into product_id -> total quantity."""
    lines = OrderedDict()
    for item in items:
        pid = int(item["product_id"])
        lines[pid] = lines.get(pid, 0) + int(item["quantity"])
    return lines


class CheckoutService:

    @staticmethod
    @transaction.atomic
    def place_order(
        user,
        *,
        items,
        payment_method: str,
        shipping_address: dict,
        billing_address: dict | None = None,
        payment_reference: str = "",
        notes: str = "",
        order_number: str | None = None,
    ) -> Order:
        """
        Create an order priced from the database.

        Products are locked, stock is decremented with a guarded UPDATE and the
        whole thing rolls back if any line cannot be fulfilled.
        """
        lines = merge_lines(items)
        if not lines:
            raise ValueError("Order has no items")

        products = (
            Product.objects
            .select_for_update()
            .filter(id__in=list(lines), is_active=True)
        )
        pmap = {p.id: p for p in products}

        subtotal = Decimal("0.00")
        order_items = []
        for pid, qty in lines.items():
            product = pmap.get(pid)
            if product is None:
                raise ProductUnavailable(f"Product {pid} not found")

            unit_price = product.effective_price
            line_total = money(unit_price * qty)
            subtotal += line_total
            order_items.append(
                OrderItem(
                    product=product,
                    product_name=product.name,
                    unit_price=unit_price,
                    quantity=qty,
                    total_price=line_total,
                )
            )

        for pid, qty in lines.items():
            updated = (
                Product.objects
                .filter(pk=pid, stock_quantity__gte=qty)
                .update(stock_quantity=F("stock_quantity") - qty)
            )
            if not updated:
                logger.info("Checkout rejected: product=%s wanted=%s stock=%s", pid, qty, pmap[pid].stock_quantity)
                raise ValueError(f"Insufficient stock for {pmap[pid].name}")

        totals = totals_for(subtotal)
        order = Order.objects.create(
            user=user,
            order_number=order_number or make_order_number(),
            payment_method=payment_method,
            payment_reference=payment_reference or "",
            subtotal=totals["subtotal"],
            tax_amount=totals["tax"],
            shipping_amount=totals["shipping"],
            discount_amount=totals["discount"],
            total_amount=totals["total"],
            shipping_address=shipping_address,
            billing_address=billing_address or shipping_address,
            notes=notes,
        )
        if payment_reference:
            order.mark_paid()

        for oi in order_items:
            oi.order = order
        OrderItem.objects.bulk_create(order_items)

        return order

    @staticmethod
    @transaction.atomic
    def checkout(user, **order_data) -> Order:
        order = CheckoutService.place_order(user, **order_data)
        CartItem.objects.filter(user=user).delete()
        logger.info("Order %s placed by user %s total=%s", order.order_number, user.pk, order.total_amount)
        return order
