import logging

from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Organization, Membership

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Organization)
def ensure_owner_membership(sender, instance, created, **kwargs):
    """
    Keep the organization owner inside the tracked member population.

    Churn scoring and alert detectors iterate organization members, so the
    owner needs a membership from the moment the tenant exists. Saving an
    organization with a different owner promotes that user to 'owner'.
    """
    membership, membership_created = Membership.objects.get_or_create(
        user=instance.owner,
        organization=instance,
        defaults={'role': 'owner'}
    )

    if not membership_created and membership.role != 'owner':
        membership.role = 'owner'
        membership.save(update_fields=['role'])

    if created:
        logger.info(
            f"Created organization {instance.slug}",
            extra={'tenant_id': str(instance.pk), 'operation': 'create_organization'}
        )
