from django.core.management.base import BaseCommand, CommandError

from apps.accounts import services
from apps.common.exceptions import ShopError


class Command(BaseCommand):
    help = "Create the first super admin account if none exists yet."

    def add_arguments(self, parser):
        parser.add_argument("--username", required=True)
        parser.add_argument("--password", required=True)
        parser.add_argument("--name", default="Super Admin")
        parser.add_argument("--phone", default="")

    def handle(self, *args, **options):
        if services.super_admin_exists():
            self.stdout.write(self.style.WARNING("Super admin already exists, nothing to do."))
            return

        try:
            user = services.setup_super_admin(
                name=options["name"],
                username=options["username"],
                password=options["password"],
                phone=options["phone"],
            )
        except ShopError as exc:
            detail = "; ".join(f"{field}: {', '.join(msgs)}" for field, msgs in exc.errors.items())
            raise CommandError(detail or str(exc.detail)) from exc

        self.stdout.write(self.style.SUCCESS(f"Super admin created. username={user.username}"))
