# users/management/commands/ensure_superuser.py

"""
PATH: users/management/commands/ensure_superuser.py

PLATFORM SUPER ADMIN BOOTSTRAP

Usage:
    python manage.py ensure_superuser --email root@example.com --password ...
    AUTO_ADMIN_EMAIL=... AUTO_ADMIN_PASSWORD=... python manage.py ensure_superuser

Rules:
- Flags win over env vars; nothing to do when neither supplies both values.
- Idempotent: an existing account (matched case-insensitively) is promoted
  to super_admin, detached from any company and gets the new password.
- The password is never echoed.
"""

from __future__ import annotations

import logging
import os

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from permissions.roles import ROLE_SUPER_ADMIN

logger = logging.getLogger("erp.auth")


class Command(BaseCommand):
    help = "Create or promote the platform super admin (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--email", default=None)
        parser.add_argument("--password", default=None)

    def handle(self, *args, **options):
        email = (options["email"] or os.environ.get("AUTO_ADMIN_EMAIL") or "").strip()
        password = (options["password"] or os.environ.get("AUTO_ADMIN_PASSWORD") or "").strip()

        if not email or not password:
            self.stdout.write(self.style.WARNING("No super admin credentials given. Skipping."))
            return

        User = get_user_model()

        with transaction.atomic():
            user = User.objects.select_for_update().filter(email__iexact=email).first()
            if user is None:
                User.objects.create_superuser(email=email, password=password)
                outcome = "created"
            else:
                user.role = ROLE_SUPER_ADMIN
                user.company = None
                user.is_active = user.is_staff = user.is_superuser = True
                user.set_password(password)
                user.save()
                outcome = "updated"

        logger.info("Super admin ensured", extra={"email": email, "outcome": outcome})
        self.stdout.write(self.style.SUCCESS(f"Super admin ensured: {email} ({outcome})"))
