import uuid
from django.db import models
from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils.text import slugify


class OrganizationQuerySet(models.QuerySet):

    def resolve(self, identifier):
        """Tenant by slug, falling back to primary key. None when neither matches."""
        organization = self.filter(slug=identifier).first()
        if organization is not None:
            return organization
        try:
            return self.filter(pk=identifier).first()
        except ValidationError:
            return None


class Organization(models.Model):
    """
    A tenant. Usage events, subscription tiers, revenue snapshots and alerts
    all hang off an organization, and its members are the users analysed for
    churn and upsell.
    """
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Tenant id, as sent in tenantId / X-Tenant-ID"
    )
    name = models.CharField(max_length=255, help_text="Tenant display name")
    slug = models.SlugField(
        max_length=255,
        unique=True,
        help_text="Derived from the name when left blank"
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='owned_organizations',
        help_text="Always holds an owner membership"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OrganizationQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Organization'
        verbose_name_plural = 'Organizations'

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            base_slug = slugify(self.name) or 'tenant'
            slug = base_slug
            suffix = 1
            while Organization.objects.filter(slug=slug).exists():
                slug = f"{base_slug}-{suffix}"
                suffix += 1
            self.slug = slug

        super().save(*args, **kwargs)

    def get_members(self):
        """Users with a membership in this tenant."""
        from django.contrib.auth import get_user_model

        return get_user_model().objects.filter(memberships__organization=self).distinct()


class Membership(models.Model):
    """
    A user's role in a tenant. The set of memberships is the population
    scored for churn and checked by the alert detectors.
    """
    ROLE_CHOICES = [
        ('owner', 'Owner'),
        ('admin', 'Admin'),
        ('member', 'Member'),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='memberships',
        help_text="Member whose usage is analysed"
    )
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name='memberships',
        help_text="Tenant the user belongs to"
    )
    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default='member',
        help_text="Admins and owners may generate and clean up alerts"
    )
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ['user', 'organization']
        ordering = ['-joined_at']
        verbose_name = 'Membership'
        verbose_name_plural = 'Memberships'

    def __str__(self):
        return f"{self.user.email} - {self.organization.name} ({self.role})"

    def is_admin_or_owner(self):
        return self.role in ('admin', 'owner')
