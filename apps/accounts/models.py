import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models


class UserRole(models.TextChoices):
    SUPER_ADMIN = "super_admin", "Super Admin"
    ADMIN = "admin", "Admin"
    SELLER = "seller", "Seller"
    TECHNICIAN = "technician", "Technician"
    INVENTORY = "inventory", "Inventory Manager"


CREATABLE_ROLES = (UserRole.ADMIN, UserRole.SELLER, UserRole.TECHNICIAN, UserRole.INVENTORY)


class User(AbstractUser):
    name = models.CharField(max_length=255, blank=True)
    role = models.CharField(max_length=20, choices=UserRole.choices, default=UserRole.SELLER)
    phone = models.CharField(max_length=20, blank=True)
    session_key = models.UUIDField(default=uuid.uuid4, editable=False)

    class Meta:
        indexes = [
            models.Index(fields=["role", "is_active"], name="user_role_active_idx"),
        ]

    @property
    def role_name(self):
        if self.role in UserRole.values:
            return UserRole(self.role).label
        return "User"

    @property
    def is_super_admin(self):
        return self.role == UserRole.SUPER_ADMIN

    def rotate_session(self):
        self.session_key = uuid.uuid4()
        self.save(update_fields=["session_key"])

    def __str__(self):
        return self.name or self.username
