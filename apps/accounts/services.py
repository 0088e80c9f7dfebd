import logging

from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from apps.accounts.authentication import issue_tokens
from apps.accounts.models import User, UserRole
from apps.audit.services import record_audit
from apps.common.exceptions import AccountInactiveError, AuthError, ConflictError, ValidationError
from apps.common.permissions import permissions_for

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def session_payload(user):
    return {
        "user": user,
        "permissions": permissions_for(user),
        "role_name": user.role_name,
    }


def login(*, username, password):
    user = User.objects.filter(username=username).first()
    if user is None or not user.check_password(password):
        logger.info("Failed login for username=%s", username)
        raise AuthError()
    if not user.is_active:
        raise AccountInactiveError()

    with transaction.atomic():
        # single session: any token issued before this login stops working
        user.rotate_session()
        user.last_login = timezone.now()
        user.save(update_fields=["last_login"])

    logger.info("User %s logged in", user.username)
    return {**issue_tokens(user), **session_payload(user)}


def logout(user):
    user.rotate_session()
    logger.info("User %s logged out", user.username)


def _check_new_password(password, confirmation=None, field="password"):
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(errors={field: [f"The password must be at least {MIN_PASSWORD_LENGTH} characters."]})
    if confirmation is not None and password != confirmation:
        raise ValidationError(errors={field: ["The password confirmation does not match."]})


def change_password(user, *, current_password, password, password_confirmation):
    if not user.check_password(current_password or ""):
        raise ValidationError("Current password is incorrect", errors={"current_password": ["Current password is incorrect"]})
    _check_new_password(password, password_confirmation)
    user.set_password(password)
    user.save(update_fields=["password"])
    record_audit(actor=user, action="accounts.password.change", entity_type="user", entity_id=user.id)


def update_profile(user, **fields):
    allowed = {key: value for key, value in fields.items() if key in {"name", "phone"}}
    for key, value in allowed.items():
        setattr(user, key, value or "")
    if allowed:
        user.save(update_fields=list(allowed))
    return user


def super_admin_exists():
    return User.objects.filter(role=UserRole.SUPER_ADMIN).exists()


def check_super_admin():
    exists = super_admin_exists()
    return {"super_admin_exists": exists, "setup_required": not exists}


def setup_super_admin(*, name, username, password, password_confirmation=None, phone=""):
    if super_admin_exists():
        raise ConflictError("Super admin already exists")
    _check_new_password(password, password_confirmation)
    with transaction.atomic():
        user = User.objects.create_user(
            username=username,
            password=password,
            name=name,
            phone=phone or "",
            role=UserRole.SUPER_ADMIN,
            is_active=True,
            is_staff=True,
            is_superuser=True,
        )
        record_audit(actor=user, action="accounts.super_admin.setup", entity_type="user", entity_id=user.id)
    logger.info("Super admin %s created", user.username)
    return user


def create_user(actor, *, password, **fields):
    _check_new_password(password)
    with transaction.atomic():
        user = User(**fields)
        user.set_password(password)
        user.save()
        record_audit(
            actor=actor,
            action="accounts.user.create",
            entity_type="user",
            entity_id=user.id,
            payload={"username": user.username, "role": user.role},
        )
    return user


def delete_user(actor, user):
    if actor.pk == user.pk:
        raise ConflictError("You cannot delete your own account")
    with transaction.atomic():
        record_audit(
            actor=actor,
            action="accounts.user.delete",
            entity_type="user",
            entity_id=user.id,
            payload={"username": user.username, "role": user.role},
        )
        user.delete()


def reset_password(actor, user, *, password):
    _check_new_password(password)
    user.set_password(password)
    user.save(update_fields=["password"])
    # an admin reset also ends the user's current session
    user.rotate_session()
    record_audit(actor=actor, action="accounts.password.reset", entity_type="user", entity_id=user.id)


def user_statistics():
    staff = User.objects.exclude(role=UserRole.SUPER_ADMIN)
    total = staff.count()
    active = staff.filter(is_active=True).count()
    by_role = {row["role"]: row["count"] for row in staff.values("role").annotate(count=Count("id")).order_by("role")}
    return {
        "total_users": total,
        "active_users": active,
        "inactive_users": total - active,
        "by_role": by_role,
    }
