import re
import uuid

from django.db import models


def normalize_phone(value):
    raw = str(value or "").strip()
    return re.sub(r"\D+", "", raw)


class Customer(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=50, blank=True)
    phone_normalized = models.CharField(max_length=50, unique=True, null=True, blank=True, editable=False)
    address = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["name"], name="customer_name_idx"),
            models.Index(fields=["created_at"], name="customer_created_idx"),
        ]

    def save(self, *args, **kwargs):
        self.phone = str(self.phone or "").strip()
        self.name = str(self.name or "").strip()
        self.phone_normalized = normalize_phone(self.phone) or None
        super().save(*args, **kwargs)

    @classmethod
    def get_or_create_by_phone(cls, phone, name="", address=""):
        """Find-or-create keyed on the normalized phone; an existing row is returned as is."""
        normalized = normalize_phone(phone)
        if normalized:
            customer = cls.objects.filter(phone_normalized=normalized).first()
            if customer:
                return customer, False
        customer = cls.objects.create(phone=phone or "", name=name, address=address or "")
        return customer, True

    @property
    def formatted_phone(self):
        digits = self.phone_normalized or ""
        if len(digits) == 10:
            return f"{digits[:3]}-{digits[3:6]}-{digits[6:]}"
        return self.phone or None

    def __str__(self):
        return f"{self.name} ({self.phone})" if self.phone else self.name
