# accounts/tests/test_permissions_defaults.py

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied
from django.test import TestCase

from accounts.authz import build_actor, require, require_admin
from accounts.models import Company, CompanyMembership

User = get_user_model()


class TestPermissionDefaults(TestCase):
    def setUp(self):
        self.company = Company.objects.create(name="C1", slug="c1")
        self.owner = User.objects.create_user(email="o@test.com", password="pass12345", name="Owner")
        self.user = User.objects.create_user(email="u@test.com", password="pass12345", name="User")
        self.admin = User.objects.create_user(email="a@test.com", password="pass12345", name="Admin")

        CompanyMembership.objects.create(user=self.owner, company=self.company, role="OWNER")
        CompanyMembership.objects.create(user=self.user, company=self.company, role="USER")
        CompanyMembership.objects.create(user=self.admin, company=self.company, role="ADMIN")

    def test_user_cannot_approve_invoices(self):
        actor = build_actor(self.user, self.company)
        self.assertFalse(actor.has("invoices.approve"))
        with self.assertRaises(PermissionDenied):
            require(actor, "invoices.approve")

    def test_user_can_sell_and_collect(self):
        actor = build_actor(self.user, self.company)
        self.assertTrue(actor.has("pos.sell"))
        self.assertTrue(actor.has("invoices.collect"))

    def test_admin_can_override_status(self):
        actor = build_actor(self.admin, self.company)
        self.assertTrue(actor.has("invoices.override_status"))
        require_admin(actor)

    def test_owner_is_implicit_allow(self):
        actor = build_actor(self.owner, self.company)
        self.assertTrue(actor.has("some.future_permission"))

    def test_user_is_not_admin(self):
        actor = build_actor(self.user, self.company)
        with self.assertRaises(PermissionDenied):
            require_admin(actor)

    def test_inactive_membership_is_rejected(self):
        CompanyMembership.objects.filter(user=self.user).update(is_active=False)
        with self.assertRaises(PermissionDenied):
            build_actor(self.user, self.company)

    def test_non_member_is_rejected(self):
        other = Company.objects.create(name="C2", slug="c2")
        with self.assertRaises(PermissionDenied):
            build_actor(self.owner, other)
