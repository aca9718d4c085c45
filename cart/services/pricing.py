from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings

CENT = Decimal("0.01")


def shop_setting(name: str):
    return settings.AYNBEAUTY[name]


def money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def shipping_for(subtotal: Decimal) -> Decimal:
    """Free shipping at or above the threshold, flat fee below it. Empty baskets ship free."""
    if subtotal <= 0 or subtotal >= shop_setting("SHIPPING_FREE_THRESHOLD"):
        return Decimal("0.00")
    return money(shop_setting("SHIPPING_FEE"))


def tax_for(subtotal: Decimal) -> Decimal:
    return money(subtotal * shop_setting("TAX_RATE"))


def totals_for(subtotal: Decimal, discount: Decimal = Decimal("0.00")) -> dict:
    subtotal = money(subtotal)
    shipping = shipping_for(subtotal)
    tax = tax_for(subtotal)
    return {
        "subtotal": subtotal,
        "shipping": shipping,
        "tax": tax,
        "discount": money(discount),
        "total": money(subtotal + shipping + tax - discount),
    }
