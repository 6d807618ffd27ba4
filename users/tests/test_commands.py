# users/tests/test_commands.py

import os
from io import StringIO
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase

from core.tests.helpers import make_company, make_user
from permissions.roles import ROLE_SALES, ROLE_SUPER_ADMIN

User = get_user_model()

PASSWORD = "Looms-and-Spindles-42"


class EnsureSuperuserTests(TestCase):
    """
    GUARANTEES:
    - creates the super admin once, promotes an existing account after that
    - skips quietly without credentials
    """

    def run_command(self, *args, env=None):
        out = StringIO()
        with mock.patch.dict(os.environ, env or {}, clear=False):
            call_command("ensure_superuser", *args, stdout=out)
        return out.getvalue()

    def test_creates_from_flags(self):
        out = self.run_command("--email", "root@example.com", "--password", PASSWORD)
        self.assertIn("(created)", out)
        self.assertNotIn(PASSWORD, out)

        root = User.objects.get(email="root@example.com")
        self.assertEqual(root.role, ROLE_SUPER_ADMIN)
        self.assertTrue(root.is_superuser)

    def test_promotes_existing_account_from_env(self):
        user = make_user(make_company(), role=ROLE_SALES)
        out = self.run_command(
            env={"AUTO_ADMIN_EMAIL": user.email.upper(), "AUTO_ADMIN_PASSWORD": PASSWORD}
        )
        self.assertIn("(updated)", out)

        user.refresh_from_db()
        self.assertEqual(user.role, ROLE_SUPER_ADMIN)
        self.assertIsNone(user.company_id)
        self.assertTrue(user.check_password(PASSWORD))
        self.assertEqual(User.objects.count(), 1)

    def test_skips_without_credentials(self):
        out = self.run_command(env={"AUTO_ADMIN_EMAIL": "", "AUTO_ADMIN_PASSWORD": ""})
        self.assertIn("Skipping", out)
        self.assertFalse(User.objects.exists())
