import uuid
from datetime import timedelta

from django.db import models
from django.utils import timezone

PAYMENT_TERM_DAYS = 30


def default_due_date():
    return timezone.localdate() + timedelta(days=PAYMENT_TERM_DAYS)


class PurchaseStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class Purchase(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    supplier = models.ForeignKey(
        "suppliers.Supplier", on_delete=models.SET_NULL, null=True, blank=True, related_name="purchases"
    )
    invoice_number = models.CharField(max_length=64, unique=True)
    status = models.CharField(max_length=16, choices=PurchaseStatus.choices, default=PurchaseStatus.COMPLETED)
    purchase_date = models.DateField(default=timezone.localdate)
    invoice_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField(default=default_due_date)
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    # true while the item quantities are counted in product stock
    stock_applied = models.BooleanField(default=False)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(
        "accounts.User", on_delete=models.SET_NULL, null=True, blank=True, related_name="purchases"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-purchase_date", "-created_at"]
        indexes = [models.Index(fields=["status", "purchase_date"], name="purchase_status_date_idx")]

    @property
    def grand_total(self):
        return self.total_amount + self.tax_amount + self.shipping_cost

    @property
    def balance(self):
        return self.grand_total - self.paid_amount

    @property
    def total_items(self):
        return sum(item.quantity for item in self.items.all())

    def __str__(self):
        return self.invoice_number


class PurchaseItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    purchase = models.ForeignKey(Purchase, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey("catalog.Product", on_delete=models.PROTECT, related_name="purchase_items")
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    state = models.CharField(max_length=32, blank=True, default="new")
    notes = models.TextField(blank=True)

    class Meta:
        constraints = [models.CheckConstraint(condition=models.Q(quantity__gt=0), name="purchase_item_qty_gt_zero")]

    @property
    def total_price(self):
        return self.quantity * self.unit_price
