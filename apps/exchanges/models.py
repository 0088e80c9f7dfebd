import uuid

from django.db import models


class ExchangeStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class Exchange(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    sale = models.ForeignKey("sales.Sale", on_delete=models.CASCADE, related_name="exchanges")
    # phone handed in by the customer
    buy_phone = models.ForeignKey("inventory.BuyPhone", on_delete=models.CASCADE, related_name="exchanges")
    customer = models.ForeignKey("customers.Customer", on_delete=models.CASCADE, related_name="exchanges")
    difference_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    status = models.CharField(max_length=16, choices=ExchangeStatus.choices, default=ExchangeStatus.PENDING)
    processed_by = models.ForeignKey(
        "accounts.User", on_delete=models.SET_NULL, null=True, blank=True, related_name="processed_exchanges"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="exchange_status_idx"),
            models.Index(fields=["created_at"], name="exchange_created_idx"),
        ]

    @property
    def customer_pays(self):
        return self.difference_amount > 0

    @property
    def shop_pays(self):
        return self.difference_amount < 0

    @property
    def formatted_difference(self):
        if self.difference_amount == 0:
            return "No Exchange"
        sign = "+" if self.difference_amount > 0 else "-"
        return f"{sign}{abs(self.difference_amount):.2f}"

    def __str__(self):
        return f"Exchange {self.id} ({self.formatted_difference})"
