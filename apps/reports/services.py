"""Read-only aggregations for the dashboard and the activity history."""

from datetime import timedelta
from decimal import Decimal

from django.db.models import DecimalField, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from apps.exchanges.models import Exchange
from apps.inventory.models import BuyPhone
from apps.sales.models import PaymentStatus, Sale

ZERO = Decimal("0.00")
MONEY_FIELD = DecimalField(max_digits=14, decimal_places=2)
RECENT_TRANSACTIONS = 4


def _money(value):
    return f"{value:.2f}"


def _net_paid(queryset):
    totals = queryset.filter(payment_status=PaymentStatus.PAID).aggregate(
        total=Coalesce(Sum("total_amount"), Value(ZERO), output_field=MONEY_FIELD),
        discount=Coalesce(Sum("discount_amount"), Value(ZERO), output_field=MONEY_FIELD),
    )
    return totals["total"] - totals["discount"]


def percent_change(current, previous):
    if previous > 0:
        change = (current - previous) / previous * 100
    elif current > 0:
        change = 100
    else:
        change = 0
    return round(float(change), 1)


def dashboard_statistics(now=None):
    now = now or timezone.now()
    today = timezone.localdate(now)
    yesterday = today - timedelta(days=1)

    today_sales = Sale.objects.filter(created_at__date=today)
    today_net = _net_paid(today_sales)
    yesterday_net = _net_paid(Sale.objects.filter(created_at__date=yesterday))

    profit = ZERO
    for sale in today_sales.filter(payment_status=PaymentStatus.PAID).select_related("buy_phone"):
        if sale.buy_phone is not None:
            profit += sale.net_amount - sale.buy_phone.buy_price

    week_start = now - timedelta(days=7)
    weekly_net = _net_paid(Sale.objects.filter(created_at__gte=week_start, created_at__lte=now))
    previous_week_net = _net_paid(
        Sale.objects.filter(created_at__gte=week_start - timedelta(days=7), created_at__lt=week_start)
    )

    recent = Sale.objects.select_related("buy_phone").order_by("-created_at")[:RECENT_TRANSACTIONS]
    return {
        "today_sales": {"amount": _money(today_net), "change_percent": percent_change(today_net, yesterday_net)},
        "total_profit": {"amount": _money(profit)},
        "weekly_sales": {
            "amount": _money(weekly_net),
            "change_percent": percent_change(weekly_net, previous_week_net),
        },
        "recent_transactions": [
            {
                "type": "sale",
                "title": f"Sale: {sale.buy_phone.model if sale.buy_phone else 'Phone'}",
                "amount": _money(sale.net_amount),
                "created_at": timezone.localtime(sale.created_at).isoformat(),
            }
            for sale in recent
        ],
    }


def _sale_entry(sale):
    phone = sale.buy_phone
    customer = sale.customer.name if sale.customer else "Unknown"
    imei = phone.imei if phone and phone.imei else "N/A"
    by = sale.created_by.name or sale.created_by.username if sale.created_by else "System"
    return {
        "type": "sale",
        "title": phone.model if phone else "Phone",
        "subtitle": f"To {customer} • IMEI: {imei} • By: {by} • price: {_money(sale.total_amount)}DA",
        "amount": _money(sale.total_amount),
        "created_at": sale.created_at,
    }


def _add_entry(phone):
    by = phone.received_by.name or phone.received_by.username if phone.received_by else "System"
    return {
        "type": "add",
        "title": f"{phone.brand.name} {phone.model}",
        "subtitle": f"From {phone.seller_name or 'Unknown'} • IMEI: {phone.imei or 'N/A'} • By: {by}",
        "amount": _money(phone.buy_price),
        "created_at": phone.created_at,
    }


def _exchange_entry(exchange):
    sold = exchange.sale.buy_phone
    by = exchange.processed_by.name or exchange.processed_by.username if exchange.processed_by else "System"
    return {
        "type": "exchange",
        "title": f"Exchange: {exchange.buy_phone.model} for {sold.model if sold else 'Phone'}",
        "subtitle": (
            f"With {exchange.customer.name} • Difference: {exchange.formatted_difference}"
            f" • Status: {exchange.get_status_display()} • By: {by}"
        ),
        "amount": _money(exchange.difference_amount),
        "created_at": exchange.created_at,
    }


def history_feed(limit=None):
    """Sales, phone additions and exchanges, newest first."""
    entries = [_sale_entry(sale) for sale in Sale.objects.select_related("customer", "buy_phone", "created_by")]
    entries += [_add_entry(phone) for phone in BuyPhone.objects.select_related("brand", "received_by")]
    entries += [
        _exchange_entry(exchange)
        for exchange in Exchange.objects.select_related(
            "customer", "buy_phone", "sale__buy_phone", "processed_by"
        )
    ]
    entries.sort(key=lambda entry: entry["created_at"], reverse=True)
    if limit:
        entries = entries[:limit]
    for entry in entries:
        entry["created_at"] = timezone.localtime(entry["created_at"]).isoformat()
    return entries
