import logging
from datetime import timedelta
from decimal import Decimal

from django.db import transaction
from django.db.models import DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from apps.audit.services import record_audit
from apps.common.exceptions import NotFoundError
from apps.customers.models import Customer
from apps.exchanges.models import Exchange, ExchangeStatus
from apps.inventory import services as ledger
from apps.inventory.models import BuyPhone, PhoneStatus
from apps.sales.models import PaymentMethod, PaymentStatus, Sale, SaleItem
from apps.sales.services import new_sale_number

logger = logging.getLogger(__name__)

PERIOD_DAYS = {"month": 30, "year": 365}
MONEY_FIELD = DecimalField(max_digits=14, decimal_places=2)


def record_exchange(actor, *, customer_name, customer_phone, received, sold):
    """Take a trade-in phone and sell a stock phone to the same customer.

    ``received`` holds the handed-in phone's fields (brand, model, imei,
    condition, buy_price and optionally color, storage, resell_price).
    ``sold`` holds ``buy_phone_id`` and ``price``.
    """
    received = dict(received)
    price = Decimal(str(sold["price"]))
    buy_price = Decimal(str(received["buy_price"]))
    difference = price - buy_price

    with transaction.atomic():
        customer, _ = Customer.get_or_create_by_phone(customer_phone, name=customer_name)

        if received.get("resell_price") is None:
            received["resell_price"] = buy_price
        received_phone = ledger.create_phone(
            actor,
            require_imei=True,
            seller_name=customer.name,
            seller_phone=customer.phone,
            status=PhoneStatus.RECEIVED,
            **received,
        )

        sold_phone = BuyPhone.objects.filter(pk=sold["buy_phone_id"]).first()
        if sold_phone is None:
            raise NotFoundError("BuyPhone not found")
        sold_phone = ledger.sell_phone(sold_phone, actor, customer=customer)

        sale = Sale.objects.create(
            sale_number=new_sale_number(),
            customer=customer,
            buy_phone=sold_phone,
            total_amount=price,
            paid_amount=max(Decimal("0"), difference),
            payment_status=PaymentStatus.PAID,
            payment_method=PaymentMethod.EXCHANGE,
            notes=f"Exchange: received {received_phone.description}",
            created_by=actor,
        )
        SaleItem.objects.create(sale=sale, buy_phone=sold_phone, quantity=1, unit_price=price)

        exchange = Exchange.objects.create(
            sale=sale,
            buy_phone=received_phone,
            customer=customer,
            difference_amount=difference,
            status=ExchangeStatus.COMPLETED,
            processed_by=actor,
        )
        record_audit(
            actor=actor,
            action="exchanges.exchange.create",
            entity_type="exchange",
            entity_id=exchange.id,
            payload={
                "sale_number": sale.sale_number,
                "received_phone_id": str(received_phone.id),
                "sold_phone_id": str(sold_phone.id),
                "customer_id": str(customer.id),
                "difference_amount": difference,
            },
        )

    logger.info(
        "Exchange %s recorded: received %s, sold %s, difference %s",
        exchange.id,
        received_phone.id,
        sold_phone.id,
        difference,
    )
    return exchange


def _set_status(exchange, actor, new_status):
    previous = exchange.status
    with transaction.atomic():
        exchange.status = new_status
        exchange.save(update_fields=["status", "updated_at"])
        record_audit(
            actor=actor,
            action=f"exchanges.exchange.{new_status}",
            entity_type="exchange",
            entity_id=exchange.id,
            payload={"status_from": previous, "status_to": new_status},
        )
    return exchange


def complete_exchange(exchange, actor):
    return _set_status(exchange, actor, ExchangeStatus.COMPLETED)


def cancel_exchange(exchange, actor):
    return _set_status(exchange, actor, ExchangeStatus.CANCELLED)


def delete_exchange(exchange, actor):
    with transaction.atomic():
        record_audit(
            actor=actor,
            action="exchanges.exchange.delete",
            entity_type="exchange",
            entity_id=exchange.id,
            payload={"sale_id": str(exchange.sale_id), "difference_amount": exchange.difference_amount},
        )
        exchange.delete()


def filter_exchanges(queryset, params):
    status = params.get("status")
    if status:
        queryset = queryset.filter(status=status)

    search = (params.get("search") or "").strip()
    if search:
        queryset = queryset.filter(
            Q(sale__sale_number__icontains=search)
            | Q(customer__name__icontains=search)
            | Q(customer__phone__icontains=search)
            | Q(buy_phone__imei__icontains=search)
            | Q(buy_phone__model__icontains=search)
        )
    return queryset.order_by("-created_at")


def _sum(queryset):
    return queryset.aggregate(
        total=Coalesce(Sum("difference_amount"), Value(Decimal("0.00")), output_field=MONEY_FIELD)
    )["total"]


def exchange_statistics(period="month"):
    queryset = Exchange.objects.all()
    days = PERIOD_DAYS.get(period)
    if days:
        queryset = queryset.filter(created_at__gte=timezone.now() - timedelta(days=days))

    completed = queryset.filter(status=ExchangeStatus.COMPLETED)
    total = completed.count()
    customer_payments = _sum(completed.filter(difference_amount__gt=0))
    shop_payments = abs(_sum(completed.filter(difference_amount__lt=0)))
    return {
        "total_exchanges": total,
        "by_status": {
            "pending": queryset.filter(status=ExchangeStatus.PENDING).count(),
            "completed": total,
            "cancelled": queryset.filter(status=ExchangeStatus.CANCELLED).count(),
        },
        "financial": {
            "total_customer_payments": f"{customer_payments:.2f}",
            "total_shop_payments": f"{shop_payments:.2f}",
            "net_balance": f"{customer_payments - shop_payments:.2f}",
        },
        "average_difference": f"{(customer_payments + shop_payments) / total:.2f}" if total else "0.00",
    }
