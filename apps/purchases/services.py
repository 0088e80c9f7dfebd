import csv
import logging
from collections import Counter
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.db.models import F, Q
from django.http import HttpResponse
from django.utils import timezone

from apps.audit.services import record_audit
from apps.catalog.models import Product
from apps.common.exceptions import ConflictError, ValidationError
from apps.common.numbering import next_document_number
from apps.purchases.models import Purchase, PurchaseItem, PurchaseStatus

logger = logging.getLogger(__name__)

MONEY = Decimal("0.01")
HEADER_FIELDS = (
    "supplier",
    "invoice_number",
    "status",
    "purchase_date",
    "invoice_date",
    "due_date",
    "tax_rate",
    "tax_amount",
    "shipping_cost",
    "paid_amount",
    "notes",
)


def new_invoice_number():
    return next_document_number(Purchase, "invoice_number", "PUR")


def _tax_from_rate(total, rate):
    return (total * rate / Decimal("100")).quantize(MONEY, rounding=ROUND_HALF_UP)


def _validate_items(items):
    if not items:
        raise ValidationError(errors={"items": ["At least one item is required."]})
    errors = {}
    for index, item in enumerate(items):
        if item["quantity"] <= 0:
            errors[f"items.{index}.quantity"] = ["The quantity must be at least 1."]
        if item["unit_price"] < 0:
            errors[f"items.{index}.unit_price"] = ["The unit price must be at least 0."]
    if errors:
        raise ValidationError(errors=errors)


def _apply_stock(purchase, direction):
    """Add (+1) or remove (-1) the purchase's item quantities from product stock."""
    items = list(purchase.items.all())
    if direction < 0:
        needed = Counter()
        for item in items:
            needed[item.product_id] += item.quantity
        products = Product.objects.select_for_update().in_bulk(list(needed))
        for product_id, quantity in needed.items():
            if products[product_id].quantity < quantity:
                raise ConflictError(
                    f"Not enough stock of {products[product_id]} left to reverse this purchase",
                    errors={"product_id": [str(product_id)]},
                )

    for item in items:
        Product.objects.filter(pk=item.product_id).update(quantity=F("quantity") + direction * item.quantity)
    purchase.stock_applied = direction > 0
    purchase.save(update_fields=["stock_applied", "updated_at"])


def create_purchase(actor, items, **fields):
    fields = {key: value for key, value in fields.items() if key in HEADER_FIELDS and value is not None}
    _validate_items(items)

    with transaction.atomic():
        if not fields.get("invoice_number"):
            fields["invoice_number"] = new_invoice_number()
        elif Purchase.objects.filter(invoice_number=fields["invoice_number"]).exists():
            raise ValidationError(errors={"invoice_number": ["The invoice number has already been taken."]})

        purchase = Purchase(created_by=actor if getattr(actor, "is_authenticated", False) else None, **fields)
        purchase.total_amount = sum((item["quantity"] * item["unit_price"] for item in items), Decimal("0.00"))
        if not purchase.tax_amount and purchase.tax_rate:
            purchase.tax_amount = _tax_from_rate(purchase.total_amount, purchase.tax_rate)
        purchase.save()

        PurchaseItem.objects.bulk_create(
            [
                PurchaseItem(
                    purchase=purchase,
                    product=item["product"],
                    quantity=item["quantity"],
                    unit_price=item["unit_price"],
                    state=item.get("state") or "new",
                    notes=item.get("notes") or "",
                )
                for item in items
            ]
        )
        if purchase.status == PurchaseStatus.COMPLETED:
            _apply_stock(purchase, +1)

        record_audit(
            actor=actor,
            action="purchases.purchase.create",
            entity_type="purchase",
            entity_id=purchase.id,
            payload={
                "invoice_number": purchase.invoice_number,
                "status": purchase.status,
                "total_amount": purchase.total_amount,
                "items": len(items),
            },
        )

    logger.info("Purchase %s recorded with %s items", purchase.invoice_number, len(items))
    return purchase


def complete_purchase(purchase, actor):
    with transaction.atomic():
        purchase = Purchase.objects.select_for_update().get(pk=purchase.pk)
        if purchase.status == PurchaseStatus.CANCELLED:
            raise ConflictError("Cancelled purchases cannot be completed")
        if not purchase.stock_applied:
            _apply_stock(purchase, +1)
        previous = purchase.status
        purchase.status = PurchaseStatus.COMPLETED
        purchase.save(update_fields=["status", "updated_at"])
        record_audit(
            actor=actor,
            action="purchases.purchase.complete",
            entity_type="purchase",
            entity_id=purchase.id,
            payload={"status_from": previous, "status_to": purchase.status},
        )
    return purchase


def cancel_purchase(purchase, actor):
    with transaction.atomic():
        purchase = Purchase.objects.select_for_update().get(pk=purchase.pk)
        if purchase.status == PurchaseStatus.CANCELLED:
            raise ConflictError("Purchase already cancelled")
        if purchase.stock_applied:
            _apply_stock(purchase, -1)
        previous = purchase.status
        purchase.status = PurchaseStatus.CANCELLED
        purchase.save(update_fields=["status", "updated_at"])
        record_audit(
            actor=actor,
            action="purchases.purchase.cancel",
            entity_type="purchase",
            entity_id=purchase.id,
            payload={"status_from": previous, "status_to": purchase.status},
        )
    logger.info("Purchase %s cancelled", purchase.invoice_number)
    return purchase


def delete_purchase(purchase, actor):
    with transaction.atomic():
        if purchase.stock_applied:
            _apply_stock(purchase, -1)
        record_audit(
            actor=actor,
            action="purchases.purchase.delete",
            entity_type="purchase",
            entity_id=purchase.id,
            payload={"invoice_number": purchase.invoice_number, "total_amount": purchase.total_amount},
        )
        purchase.delete()


def filter_purchases(queryset, params):
    status = params.get("status")
    if status:
        queryset = queryset.filter(status=status)

    supplier_id = params.get("supplier_id")
    if supplier_id:
        queryset = queryset.filter(supplier_id=supplier_id)

    search = (params.get("search") or "").strip()
    if search:
        queryset = queryset.filter(Q(invoice_number__icontains=search) | Q(supplier__name__icontains=search))

    start_date = params.get("start_date")
    if start_date:
        queryset = queryset.filter(purchase_date__range=(start_date, params.get("end_date") or start_date))
    return queryset.order_by("-purchase_date", "-created_at")


CSV_COLUMNS = (
    ("Invoice", lambda purchase: purchase.invoice_number),
    ("Supplier", lambda purchase: purchase.supplier.name if purchase.supplier else ""),
    ("Status", lambda purchase: purchase.get_status_display()),
    ("Purchase date", lambda purchase: purchase.purchase_date),
    ("Due date", lambda purchase: purchase.due_date),
    ("Items", lambda purchase: purchase.total_items),
    ("Total", lambda purchase: purchase.total_amount),
    ("Tax", lambda purchase: purchase.tax_amount),
    ("Shipping", lambda purchase: purchase.shipping_cost),
    ("Grand total", lambda purchase: purchase.grand_total),
    ("Paid", lambda purchase: purchase.paid_amount),
    ("Balance", lambda purchase: purchase.balance),
)


def export_purchases_csv(queryset):
    response = HttpResponse(content_type="text/csv")
    response["Content-Disposition"] = f"attachment; filename=purchases-{timezone.localdate():%Y%m%d}.csv"

    writer = csv.writer(response)
    writer.writerow([label for label, _ in CSV_COLUMNS])
    for purchase in queryset.select_related("supplier").prefetch_related("items"):
        writer.writerow([getter(purchase) for _, getter in CSV_COLUMNS])
    return response
