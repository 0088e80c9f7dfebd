import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from apps.audit.services import record_audit
from apps.catalog.models import Product
from apps.common.exceptions import ConflictError, NotFoundError
from apps.common.numbering import next_document_number
from apps.customers.models import Customer
from apps.inventory import services as ledger
from apps.inventory.models import BuyPhone, PhoneStatus
from apps.sales.models import PaymentMethod, PaymentStatus, Sale, SaleItem

logger = logging.getLogger(__name__)


def new_sale_number():
    return next_document_number(Sale, "sale_number", "SAL")


def sale_receipt(sale):
    customer = sale.customer
    phone = sale.buy_phone
    return {
        "id": str(sale.id),
        "sale_number": sale.sale_number,
        "buyer_name": customer.name if customer else None,
        "buyer_phone": customer.phone if customer else None,
        "buyer_address": customer.address if customer else None,
        "model": phone.model if phone else None,
        "imei": phone.imei if phone else None,
        "storage": phone.storage if phone else None,
        "color": phone.color if phone else None,
        "price": f"{sale.total_amount:.2f}",
        "discount": f"{sale.discount_amount:.2f}",
        "total": f"{sale.total_amount - sale.discount_amount:.2f}",
        "created_at": timezone.localtime(sale.created_at).strftime("%Y-%m-%d %H:%M:%S"),
    }


def record_sale(
    actor,
    *,
    buyer_name,
    buy_phone_id,
    total_amount,
    buyer_phone="",
    buyer_address="",
    discount_amount=None,
    notes="",
    payment_method=PaymentMethod.CASH,
):
    total_amount = Decimal(str(total_amount))
    discount_amount = Decimal(str(discount_amount or 0))

    with transaction.atomic():
        customer, created = Customer.get_or_create_by_phone(buyer_phone, name=buyer_name, address=buyer_address)

        phone = BuyPhone.objects.filter(pk=buy_phone_id).first()
        if phone is None:
            raise NotFoundError("BuyPhone not found")

        sale = Sale.objects.create(
            sale_number=new_sale_number(),
            customer=customer,
            buy_phone=phone,
            total_amount=total_amount,
            discount_amount=discount_amount,
            paid_amount=total_amount - discount_amount,
            payment_status=PaymentStatus.PAID,
            payment_method=payment_method,
            notes=notes or "",
            created_by=actor,
        )
        SaleItem.objects.create(sale=sale, buy_phone=phone, quantity=1, unit_price=total_amount)

        phone = ledger.sell_phone(phone, actor, customer=customer)
        sale.buy_phone = phone

        record_audit(
            actor=actor,
            action="sales.sale.create",
            entity_type="sale",
            entity_id=sale.id,
            payload={
                "sale_number": sale.sale_number,
                "buy_phone_id": str(phone.id),
                "customer_id": str(customer.id),
                "customer_created": created,
                "total_amount": total_amount,
                "discount_amount": discount_amount,
            },
        )

    logger.info("Sale %s recorded: phone %s to customer %s", sale.sale_number, phone.id, customer.id)
    return sale


def delete_sale(sale, actor):
    if sale.exchanges.exists():
        raise ConflictError("This sale belongs to an exchange; delete the exchange instead")

    with transaction.atomic():
        phone = sale.buy_phone
        if phone is not None and phone.deleted_at is None and phone.status == PhoneStatus.SOLD:
            ledger.update_phone(phone, actor, status=PhoneStatus.LISTED)

        for item in sale.items.filter(product__isnull=False):
            Product.objects.filter(pk=item.product_id).update(quantity=F("quantity") + item.quantity)

        record_audit(
            actor=actor,
            action="sales.sale.delete",
            entity_type="sale",
            entity_id=sale.id,
            payload={"sale_number": sale.sale_number, "buy_phone_id": str(sale.buy_phone_id) if sale.buy_phone_id else None},
        )
        sale.delete()

    logger.info("Sale %s deleted and phone restored to listed", sale.sale_number)
