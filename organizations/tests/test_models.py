"""
Tests for Organization and Membership models.

Tests cover:
- Slug generation and slug-or-id lookup
- Owner membership created by the post_save signal
- Member lookup used by churn scoring
- Membership roles
"""

import uuid
import pytest
from django.db.utils import IntegrityError
from accounts.models import User
from organizations.models import Organization, Membership


@pytest.mark.django_db
class TestOrganizationModel:

    def setup_method(self):
        self.owner = User.objects.create_user(email='owner@example.com', password='testpass123')

    def test_slug_generated_and_unique(self):
        first = Organization.objects.create(name='Acme Analytics', owner=self.owner)
        second = Organization.objects.create(name='Acme Analytics', owner=self.owner)

        assert first.slug == 'acme-analytics'
        assert second.slug == 'acme-analytics-1'

    def test_resolve_by_slug_or_id(self):
        org = Organization.objects.create(name='Acme Analytics', owner=self.owner)

        assert Organization.objects.resolve('acme-analytics') == org
        assert Organization.objects.resolve(str(org.id)) == org
        assert Organization.objects.resolve('missing') is None
        assert Organization.objects.resolve(str(uuid.uuid4())) is None

    def test_owner_membership_created(self):
        org = Organization.objects.create(name='Test Org', owner=self.owner)

        membership = Membership.objects.get(organization=org)
        assert membership.user == self.owner
        assert membership.role == 'owner'

    def test_update_does_not_duplicate_owner_membership(self):
        org = Organization.objects.create(name='Test Org', owner=self.owner)
        org.name = 'Renamed Org'
        org.save()

        assert Membership.objects.filter(organization=org).count() == 1

    def test_owner_transfer_promotes_new_owner(self):
        member = User.objects.create_user(email='member@example.com', password='testpass123')
        org = Organization.objects.create(name='Test Org', owner=self.owner)
        Membership.objects.create(user=member, organization=org, role='member')

        org.owner = member
        org.save()

        assert Membership.objects.get(organization=org, user=member).role == 'owner'
        assert Membership.objects.filter(organization=org).count() == 2

    def test_get_members(self):
        member = User.objects.create_user(email='member@example.com', password='testpass123')
        outsider = User.objects.create_user(email='outsider@example.com', password='testpass123')
        org = Organization.objects.create(name='Test Org', owner=self.owner)
        Membership.objects.create(user=member, organization=org, role='member')
        Organization.objects.create(name='Other Org', owner=outsider)

        assert set(org.get_members()) == {self.owner, member}
        assert org.get_members().count() == 2


@pytest.mark.django_db
class TestMembershipModel:

    def setup_method(self):
        self.owner = User.objects.create_user(email='owner@example.com', password='testpass123')
        self.org = Organization.objects.create(name='Test Org', owner=self.owner)

    def test_roles(self):
        admin = User.objects.create_user(email='admin@example.com', password='testpass123')
        member = User.objects.create_user(email='member@example.com', password='testpass123')
        admin_membership = Membership.objects.create(user=admin, organization=self.org, role='admin')
        member_membership = Membership.objects.create(user=member, organization=self.org)

        assert admin_membership.is_admin_or_owner()
        assert admin_membership.role == 'admin'
        assert member_membership.role == 'member'
        assert not member_membership.is_admin_or_owner()

    def test_unique_per_organization(self):
        with pytest.raises(IntegrityError):
            Membership.objects.create(user=self.owner, organization=self.org, role='admin')

    def test_str(self):
        membership = Membership.objects.get(user=self.owner, organization=self.org)

        assert str(membership) == 'owner@example.com - Test Org (owner)'
