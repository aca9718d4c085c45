"""Dashboard numbers and sales analytics over sale-counted orders."""
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Avg, Count, DecimalField, F, Q, Sum, Value
from django.db.models.functions import Coalesce, TruncDate
from django.utils import timezone

from catalog.models import Product
from orders.models import Order, OrderItem

User = get_user_model()

DATE_FILTER_TODAY = "today"
DATE_FILTER_YEAR = "year"
DATE_FILTER_ALL = "all"
DATE_FILTERS = (DATE_FILTER_TODAY, "7", "30", "90", DATE_FILTER_YEAR, DATE_FILTER_ALL)
DEFAULT_DATE_FILTER = "30"

ZERO = Value(Decimal("0.00"), output_field=DecimalField(max_digits=14, decimal_places=2))


def sale_q(prefix: str = "") -> Q:
    """An order is a sale when it is paid or has moved past pending without being cancelled."""
    return Q(**{f"{prefix}payment_status": Order.PAYMENT_PAID}) | Q(**{f"{prefix}status__in": Order.SALE_STATUSES})


def date_q(date_filter: str, prefix: str = "") -> Q:
    field = f"{prefix}created_at"
    now = timezone.now()
    if date_filter == DATE_FILTER_TODAY:
        return Q(**{f"{field}__date": timezone.localdate()})
    if date_filter == DATE_FILTER_YEAR:
        return Q(**{f"{field}__year": timezone.localdate().year})
    if date_filter == DATE_FILTER_ALL:
        return Q()
    return Q(**{f"{field}__gte": now - timedelta(days=int(date_filter))})


def _money_sum(field: str, **kwargs):
    return Coalesce(Sum(field, **kwargs), ZERO)


class DashboardService:

    @staticmethod
    def overview() -> dict:
        sales = Order.objects.filter(sale_q())
        low_stock = settings.AYNBEAUTY["LOW_STOCK_THRESHOLD"]

        recent_orders = (
            Order.objects
            .select_related("user")
            .order_by("-created_at", "-id")[:10]
        )

        top_selling = (
            Product.objects
            .annotate(total_sold=Coalesce(Sum("order_items__quantity", filter=sale_q("order_items__order__")), 0))
            .order_by("-total_sold", "id")
            .values("id", "name", "price", "stock_quantity", "total_sold")[:10]
        )

        return {
            "stats": {
                "totalUsers": User.objects.filter(role=User.Role.CUSTOMER).count(),
                "totalProducts": Product.objects.count(),
                "totalOrders": Order.objects.count(),
                "totalRevenue": sales.aggregate(total=_money_sum("total_amount"))["total"],
            },
            "recentOrders": [
                {
                    "id": o.id,
                    "order_number": o.order_number,
                    "status": o.status,
                    "payment_status": o.payment_status,
                    "total_amount": o.total_amount,
                    "created_at": o.created_at,
                    "first_name": o.user.first_name,
                    "last_name": o.user.last_name,
                    "email": o.user.email,
                }
                for o in recent_orders
            ],
            "lowStockProducts": list(
                Product.objects
                .filter(stock_quantity__lt=low_stock)
                .order_by("stock_quantity", "id")
                .values("id", "name", "stock_quantity", "price")
            ),
            "topSellingProducts": list(top_selling),
        }


class SalesAnalyticsService:

    @staticmethod
    def report(date_filter: str = DEFAULT_DATE_FILTER) -> dict:
        orders = Order.objects.filter(sale_q(), date_q(date_filter))
        items = OrderItem.objects.filter(order__in=orders)
        product_items = items.filter(product__isnull=False)

        summary = orders.aggregate(
            total_orders=Count("id"),
            total_revenue=_money_sum("total_amount"),
            average_order_value=Coalesce(Avg("total_amount"), ZERO),
        )
        summary["total_items_sold"] = items.aggregate(n=Coalesce(Sum("quantity"), 0))["n"]
        summary["average_order_value"] = Decimal(summary["average_order_value"]).quantize(Decimal("0.01"))

        sales_per_product = (
            product_items
            .values(pid=F("product_id"))
            .annotate(
                name=F("product__name"),
                price=F("product__price"),
                stock_quantity=F("product__stock_quantity"),
                units_sold=Sum("quantity"),
                revenue=Sum("total_price"),
                number_of_orders=Count("order", distinct=True),
            )
            .order_by("-units_sold", "pid")[:50]
        )

        revenue_per_product = (
            product_items
            .values(pid=F("product_id"))
            .annotate(
                name=F("product__name"),
                price=F("product__price"),
                units_sold=Sum("quantity"),
                total_revenue=Sum("total_price"),
                average_selling_price=Avg("unit_price"),
            )
            .order_by("-total_revenue", "pid")[:50]
        )

        items_per_day = {
            row["day"]: row["n"]
            for row in items.annotate(day=TruncDate("order__created_at")).values("day").annotate(n=Sum("quantity"))
        }
        per_day = list(
            orders
            .annotate(day=TruncDate("created_at"))
            .values("day")
            .annotate(
                orders_count=Count("id"),
                revenue=_money_sum("total_amount"),
                subtotal_sum=_money_sum("subtotal"),
                tax_sum=_money_sum("tax_amount"),
                shipping_sum=_money_sum("shipping_amount"),
            )
            .order_by("-day")[:90]
        )

        top_customers = (
            orders
            .values(uid=F("user_id"))
            .annotate(
                first_name=F("user__first_name"),
                last_name=F("user__last_name"),
                email=F("user__email"),
                total_orders=Count("id"),
                total_spent=_money_sum("total_amount"),
            )
            .order_by("-total_spent", "uid")[:20]
        )

        sales_by_category = (
            items
            .filter(product__category__isnull=False)
            .values(cid=F("product__category_id"))
            .annotate(
                category_name=F("product__category__name"),
                orders_count=Count("order", distinct=True),
                units_sold=Sum("quantity"),
                revenue=Sum("total_price"),
            )
            .order_by("-revenue", "cid")
        )

        return {
            "dateFilter": date_filter,
            "summary": summary,
            "salesPerProduct": [_rename(r, pid="id") for r in sales_per_product],
            "salesPerDay": [
                {
                    "sale_date": r["day"],
                    "orders_count": r["orders_count"],
                    "items_sold": items_per_day.get(r["day"], 0),
                    "daily_revenue": r["revenue"],
                }
                for r in per_day
            ],
            "revenuePerProduct": [_rename(r, pid="id") for r in revenue_per_product],
            "revenuePerDay": [
                {
                    "date": r["day"],
                    "revenue": r["revenue"],
                    "subtotal": r["subtotal_sum"],
                    "tax": r["tax_sum"],
                    "shipping": r["shipping_sum"],
                }
                for r in per_day
            ],
            "topCustomers": [_rename(r, uid="id") for r in top_customers],
            "salesByCategory": [_rename(r, cid="id") for r in sales_by_category],
        }


def _rename(row: dict, **names) -> dict:
    row = dict(row)
    for old, new in names.items():
        row[new] = row.pop(old)
    return row
