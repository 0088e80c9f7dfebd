import csv
import logging
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import DecimalField, Sum, Value
from django.db.models.functions import Coalesce
from django.http import HttpResponse
from django.utils import timezone

from apps.audit.services import record_audit
from apps.catalog.models import Brand, Product
from apps.common.exceptions import ConflictError, DuplicateImeiError, ValidationError
from apps.inventory.models import (
    CONDITION_MULTIPLIERS,
    DEFAULT_MULTIPLIER,
    BuyPhone,
    PhoneCondition,
    PhoneStatus,
)

logger = logging.getLogger(__name__)

IMEI_LENGTH = 15
MONEY = Decimal("0.01")
MONEY_FIELD = DecimalField(max_digits=14, decimal_places=2)
EDITABLE_FIELDS = (
    "seller_name",
    "seller_phone",
    "brand",
    "model",
    "color",
    "storage",
    "imei",
    "condition",
    "buy_price",
    "resell_price",
    "status",
    "notes",
    "issues",
    "received_date",
)
PERIOD_DAYS = {"month": 30, "year": 365}


def suggested_resell_price(buy_price, condition):
    multiplier = CONDITION_MULTIPLIERS.get(condition, DEFAULT_MULTIPLIER)
    return (Decimal(str(buy_price)) * multiplier).quantize(MONEY, rounding=ROUND_HALF_UP)


def imei_exists(imei, exclude_id=None):
    if not imei:
        return False

    phones = BuyPhone.all_objects.filter(imei=imei)
    if exclude_id is not None:
        phones = phones.exclude(pk=exclude_id)
    if phones.exists():
        return True

    try:
        with transaction.atomic():
            return Product.objects.filter(imei=imei).exists()
    except DatabaseError as exc:
        # the unique constraint on buy phones still guards the write
        logger.warning("IMEI catalog check failed for %s: %s", imei, exc)
        return False


def _normalize(fields):
    cleaned = {key: value for key, value in fields.items() if key in EDITABLE_FIELDS}
    for key in ("seller_name", "seller_phone", "model", "color", "storage", "notes", "issues"):
        if key in cleaned:
            cleaned[key] = (cleaned[key] or "").strip()
    if "imei" in cleaned:
        cleaned["imei"] = (cleaned["imei"] or "").strip() or None
    for key in ("buy_price", "resell_price"):
        if cleaned.get(key) is not None and not isinstance(cleaned[key], Decimal):
            cleaned[key] = Decimal(str(cleaned[key]))
    return cleaned


def _validate(fields, *, partial=False, require_imei=False):
    errors = {}

    def required(key):
        return not partial or key in fields

    for key in ("seller_name", "model"):
        if required(key) and not fields.get(key):
            errors[key] = [f"The {key.replace('_', ' ')} field is required."]

    if required("brand"):
        brand = fields.get("brand")
        if brand is None:
            errors["brand_id"] = ["The brand id field is required."]
        elif not isinstance(brand, Brand):
            errors["brand_id"] = ["The selected brand id is invalid."]

    imei = fields.get("imei")
    if imei is None:
        if require_imei and required("imei"):
            errors["imei"] = ["The imei field is required."]
    elif len(imei) != IMEI_LENGTH or not imei.isdigit():
        errors["imei"] = [f"The imei must be {IMEI_LENGTH} digits."]

    if "condition" in fields and fields["condition"] not in PhoneCondition.values:
        errors["condition"] = ["The selected condition is invalid."]

    if "status" in fields and fields["status"] not in PhoneStatus.values:
        errors["status"] = ["The selected status is invalid."]

    buy_price = fields.get("buy_price")
    if required("buy_price"):
        if buy_price is None:
            errors["buy_price"] = ["The buy price field is required."]
        elif buy_price < 0:
            errors["buy_price"] = ["The buy price must be at least 0."]

    resell_price = fields.get("resell_price")
    if resell_price is not None and resell_price < 0:
        errors["resell_price"] = ["The resell price must be at least 0."]

    if errors:
        raise ValidationError(errors=errors)


def _save(phone, update_fields=None):
    try:
        with transaction.atomic():
            phone.save(update_fields=update_fields)
    except IntegrityError as exc:
        if phone.imei and BuyPhone.all_objects.filter(imei=phone.imei).exclude(pk=phone.pk).exists():
            raise DuplicateImeiError() from exc
        raise


def create_phone(actor, *, require_imei=False, **fields):
    fields = _normalize(fields)
    _validate(fields, require_imei=require_imei)

    if imei_exists(fields.get("imei")):
        raise DuplicateImeiError()

    fields.setdefault("condition", PhoneCondition.GOOD)
    if not fields.get("status"):
        fields["status"] = PhoneStatus.RECEIVED
    if not fields.get("received_date"):
        fields["received_date"] = timezone.localdate()
    if fields.get("resell_price") is None:
        fields["resell_price"] = suggested_resell_price(fields["buy_price"], fields["condition"])
    if fields["status"] == PhoneStatus.SOLD:
        fields["sold_date"] = timezone.localdate()

    phone = BuyPhone(received_by=actor if getattr(actor, "is_authenticated", False) else None, **fields)
    with transaction.atomic():
        _save(phone)
        record_audit(
            actor=actor,
            action="inventory.buy_phone.create",
            entity_type="buy_phone",
            entity_id=phone.id,
            payload={
                "imei": phone.imei,
                "model": phone.model,
                "condition": phone.condition,
                "buy_price": phone.buy_price,
                "resell_price": phone.resell_price,
            },
        )
    logger.info("Phone %s received from %s for %s", phone.id, phone.seller_name, phone.buy_price)
    return phone


def _apply_status(phone, new_status):
    """Set status keeping sold_date in step with it."""
    if new_status == phone.status:
        return
    if new_status == PhoneStatus.SOLD:
        phone.sold_date = timezone.localdate()
    elif phone.status == PhoneStatus.SOLD:
        phone.sold_date = None
        phone.sold_to = None
    phone.status = new_status


def update_phone(phone, actor, **fields):
    fields = _normalize(fields)
    _validate(fields, partial=True)

    if fields.get("imei") and imei_exists(fields["imei"], exclude_id=phone.pk):
        raise DuplicateImeiError()

    previous_status = phone.status
    new_status = fields.pop("status", None)
    for key, value in fields.items():
        setattr(phone, key, value)
    if new_status:
        _apply_status(phone, new_status)

    with transaction.atomic():
        _save(phone)
        record_audit(
            actor=actor,
            action="inventory.buy_phone.update",
            entity_type="buy_phone",
            entity_id=phone.id,
            payload={"fields": sorted(fields), "status_from": previous_status, "status_to": phone.status},
        )
    return phone


def mark_tested(phone, actor, issues=None):
    fields = {"status": PhoneStatus.TESTED}
    if issues is not None:
        fields["issues"] = ", ".join(issues) if isinstance(issues, (list, tuple)) else issues
    return update_phone(phone, actor, **fields)


def mark_listed(phone, actor):
    return update_phone(phone, actor, status=PhoneStatus.LISTED)


def mark_returned(phone, actor):
    return update_phone(phone, actor, status=PhoneStatus.RETURNED)


def mark_sold(phone, actor, customer=None):
    with transaction.atomic():
        phone = update_phone(phone, actor, status=PhoneStatus.SOLD)
        if customer is not None:
            phone.sold_to = customer
            phone.save(update_fields=["sold_to", "updated_at"])
    return phone


def sell_phone(phone, actor, sold_price=None, customer=None):
    with transaction.atomic():
        phone = BuyPhone.objects.select_for_update().get(pk=phone.pk)
        if phone.status == PhoneStatus.SOLD:
            raise ConflictError("Phone already sold")

        _apply_status(phone, PhoneStatus.SOLD)
        if sold_price is not None:
            phone.resell_price = Decimal(str(sold_price))
        if customer is not None:
            phone.sold_to = customer
        phone.save()
        record_audit(
            actor=actor,
            action="inventory.buy_phone.sell",
            entity_type="buy_phone",
            entity_id=phone.id,
            payload={"sold_price": phone.resell_price, "sold_to": str(phone.sold_to_id) if phone.sold_to_id else None},
        )
    logger.info("Phone %s sold for %s", phone.id, phone.resell_price)
    return phone


def soft_delete_phone(phone, actor):
    with transaction.atomic():
        phone.deleted_at = timezone.now()
        phone.save(update_fields=["deleted_at", "updated_at"])
        record_audit(
            actor=actor,
            action="inventory.buy_phone.delete",
            entity_type="buy_phone",
            entity_id=phone.id,
            payload={"imei": phone.imei, "status": phone.status},
        )


def filter_phones(queryset, params):
    status = (params.get("status") or "").strip()
    if not status:
        queryset = queryset.unsold()
    elif status == "available":
        queryset = queryset.available()
    elif status == "needs_testing":
        queryset = queryset.needs_testing()
    elif status in PhoneStatus.values:
        queryset = queryset.filter(status=status)

    search = (params.get("search") or "").strip()
    if search:
        queryset = queryset.search(search)

    condition = params.get("condition")
    if condition:
        queryset = queryset.filter(condition=condition)

    brand_id = params.get("brand_id")
    if brand_id:
        queryset = queryset.filter(brand_id=brand_id)

    start_date = params.get("start_date")
    if start_date:
        queryset = queryset.received_between(start_date, params.get("end_date") or None)

    return queryset.order_by("-created_at")


def _money_sum(queryset, field):
    return queryset.aggregate(total=Coalesce(Sum(field), Value(Decimal("0.00")), output_field=MONEY_FIELD))["total"]


def statistics(period="month"):
    queryset = BuyPhone.objects.all()
    days = PERIOD_DAYS.get(period)
    if days:
        queryset = queryset.filter(received_date__gte=timezone.localdate() - timedelta(days=days))

    total = queryset.count()
    sold = queryset.sold().count()
    investment = _money_sum(queryset, "buy_price")
    revenue = _money_sum(queryset.sold(), "resell_price")
    return {
        "total_phones": total,
        "sold_phones": sold,
        "available_phones": queryset.available().count(),
        "needs_testing": queryset.needs_testing().count(),
        "total_investment": investment,
        "total_revenue": revenue,
        "total_profit": revenue - investment,
        "sell_through_rate": round(sold / total * 100, 2) if total else 0,
    }


CSV_COLUMNS = (
    ("ID", lambda phone: phone.id),
    ("Brand", lambda phone: phone.brand.name),
    ("Model", lambda phone: phone.model),
    ("Storage", lambda phone: phone.storage),
    ("Color", lambda phone: phone.color),
    ("IMEI", lambda phone: phone.imei or ""),
    ("Condition", lambda phone: phone.get_condition_display()),
    ("Status", lambda phone: phone.get_status_display()),
    ("Seller", lambda phone: phone.seller_name),
    ("Seller phone", lambda phone: phone.seller_phone),
    ("Buy price", lambda phone: phone.buy_price),
    ("Resell price", lambda phone: phone.resell_price if phone.resell_price is not None else ""),
    ("Received", lambda phone: phone.received_date),
    ("Sold", lambda phone: phone.sold_date or ""),
)


def export_phones_csv(queryset):
    response = HttpResponse(content_type="text/csv")
    response["Content-Disposition"] = f"attachment; filename=buy-phones-{timezone.localdate():%Y%m%d}.csv"

    writer = csv.writer(response)
    writer.writerow([label for label, _ in CSV_COLUMNS])
    for phone in queryset.select_related("brand"):
        writer.writerow([getter(phone) for _, getter in CSV_COLUMNS])
    return response
