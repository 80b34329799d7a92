from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase

from apps.accounts.models import Company, CompanyMembership, Role
from apps.accounts.services import active_memberships, has_company_access

User = get_user_model()


class CompanyAccessTests(TestCase):

    def setUp(self):
        self.company = Company.objects.create(name="Acme Supplies")
        self.user = User.objects.create_user(username="staff", password="pass1234")

    def test_no_membership(self):
        self.assertFalse(has_company_access(self.user))
        self.assertFalse(has_company_access(AnonymousUser()))
        self.assertFalse(has_company_access(None))

    def test_active_membership(self):
        CompanyMembership.objects.create(user=self.user, company=self.company, role=Role.STAFF)
        self.assertTrue(has_company_access(self.user))
        self.assertEqual(active_memberships(self.user).count(), 1)

    def test_inactive_membership_or_company(self):
        membership = CompanyMembership.objects.create(user=self.user, company=self.company)

        membership.is_active = False
        membership.save()
        self.assertFalse(has_company_access(self.user))

        membership.is_active = True
        membership.save()
        self.company.is_active = False
        self.company.save()
        self.assertFalse(has_company_access(self.user))

    def test_access_is_not_cached(self):
        membership = CompanyMembership.objects.create(user=self.user, company=self.company)
        self.assertTrue(has_company_access(self.user))
        membership.delete()
        self.assertFalse(has_company_access(self.user))

    def test_superuser(self):
        admin = User.objects.create_superuser(username="root", password="pass1234")
        self.assertTrue(has_company_access(admin))
