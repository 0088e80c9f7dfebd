import uuid
from decimal import Decimal

from django.db import models
from django.db.models import Q
from django.utils import timezone


class PhoneCondition(models.TextChoices):
    EXCELLENT = "excellent", "Excellent"
    VERY_GOOD = "very_good", "Very good"
    GOOD = "good", "Good"
    FAIR = "fair", "Fair"
    DAMAGED = "damaged", "Damaged"
    BROKEN = "broken", "Broken"


class PhoneStatus(models.TextChoices):
    RECEIVED = "received", "Received"
    TESTED = "tested", "Tested"
    LISTED = "listed", "Listed"
    SOLD = "sold", "Sold"
    RETURNED = "returned", "Returned"
    CANCELLED = "cancelled", "Cancelled"


CONDITION_MULTIPLIERS = {
    PhoneCondition.EXCELLENT: Decimal("1.5"),
    PhoneCondition.VERY_GOOD: Decimal("1.4"),
    PhoneCondition.GOOD: Decimal("1.3"),
    PhoneCondition.FAIR: Decimal("1.2"),
    PhoneCondition.DAMAGED: Decimal("1.1"),
    PhoneCondition.BROKEN: Decimal("1.0"),
}
DEFAULT_MULTIPLIER = Decimal("1.3")

AVAILABLE_STATUSES = (PhoneStatus.TESTED, PhoneStatus.LISTED)


class BuyPhoneQuerySet(models.QuerySet):
    def sold(self):
        return self.filter(status=PhoneStatus.SOLD)

    def unsold(self):
        return self.exclude(status=PhoneStatus.SOLD)

    def available(self):
        return self.filter(status__in=AVAILABLE_STATUSES)

    def needs_testing(self):
        return self.filter(status=PhoneStatus.RECEIVED)

    def search(self, term):
        return self.filter(
            Q(imei__icontains=term)
            | Q(model__icontains=term)
            | Q(seller_name__icontains=term)
            | Q(seller_phone__icontains=term)
            | Q(brand__name__icontains=term)
        )

    def received_between(self, start_date, end_date=None):
        return self.filter(received_date__range=(start_date, end_date or start_date))


class ActiveBuyPhoneManager(models.Manager.from_queryset(BuyPhoneQuerySet)):
    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class BuyPhone(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    seller_name = models.CharField(max_length=255)
    seller_phone = models.CharField(max_length=50, blank=True, db_index=True)
    brand = models.ForeignKey("catalog.Brand", on_delete=models.CASCADE, related_name="buy_phones")
    model = models.CharField(max_length=255)
    color = models.CharField(max_length=100, blank=True)
    storage = models.CharField(max_length=50, blank=True)
    imei = models.CharField(max_length=15, null=True, blank=True)
    condition = models.CharField(max_length=20, choices=PhoneCondition.choices, default=PhoneCondition.GOOD)
    buy_price = models.DecimalField(max_digits=10, decimal_places=2)
    resell_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    status = models.CharField(max_length=20, choices=PhoneStatus.choices, default=PhoneStatus.RECEIVED, db_index=True)
    notes = models.TextField(blank=True)
    issues = models.TextField(blank=True)
    received_date = models.DateField(default=timezone.localdate, db_index=True)
    sold_date = models.DateField(null=True, blank=True, db_index=True)
    received_by = models.ForeignKey(
        "accounts.User", null=True, blank=True, on_delete=models.SET_NULL, related_name="received_phones"
    )
    sold_to = models.ForeignKey(
        "customers.Customer", null=True, blank=True, on_delete=models.SET_NULL, related_name="bought_phones"
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = ActiveBuyPhoneManager()
    all_objects = BuyPhoneQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        base_manager_name = "all_objects"
        constraints = [
            models.UniqueConstraint(fields=["imei"], condition=Q(imei__isnull=False), name="unique_buy_phone_imei"),
        ]
        indexes = [
            models.Index(fields=["condition"], name="buy_phone_condition_idx"),
        ]

    @property
    def is_sold(self):
        return self.status == PhoneStatus.SOLD

    @property
    def is_available(self):
        return self.status in AVAILABLE_STATUSES

    @property
    def needs_testing(self):
        return self.status == PhoneStatus.RECEIVED

    @property
    def potential_profit(self):
        if not self.resell_price:
            return None
        return self.resell_price - self.buy_price

    @property
    def profit_margin(self):
        if not self.resell_price or not self.buy_price:
            return None
        margin = (self.resell_price - self.buy_price) / self.buy_price * 100
        return margin.quantize(Decimal("0.01"))

    @property
    def description(self):
        text = f"{self.brand.name} {self.model}"
        if self.storage:
            text += f" {self.storage}"
        if self.color:
            text += f" ({self.color})"
        return text

    @property
    def days_in_inventory(self):
        if not self.received_date:
            return 0
        end = self.sold_date or timezone.localdate()
        return (end - self.received_date).days

    def __str__(self):
        return f"{self.brand.name} {self.model} [{self.imei or 'no imei'}]"
