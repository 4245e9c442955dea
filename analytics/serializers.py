from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework import serializers

from organizations.models import Organization, Membership
from .models import UsageEvent
from .reports import REPORT_GENERATORS

User = get_user_model()


class UsageEventSerializer(serializers.ModelSerializer):
    """
    Serializer for usage events.
    """
    class Meta:
        model = UsageEvent
        fields = [
            'id',
            'organization',
            'user',
            'event_type',
            'feature_name',
            'usage_amount',
            'metadata',
            'timestamp',
        ]
        read_only_fields = fields


class TrackEventSerializer(serializers.Serializer):
    """
    Validates a usage event sent to the tracking endpoint.
    The optional user must be a member of the organization.
    """
    org = serializers.PrimaryKeyRelatedField(queryset=Organization.objects.all())
    event_type = serializers.CharField(max_length=100)
    user = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), required=False, allow_null=True)
    feature_name = serializers.CharField(max_length=255, required=False, allow_null=True, allow_blank=True)
    usage_amount = serializers.IntegerField(required=False, default=1)
    metadata = serializers.DictField(required=False, default=dict)
    timestamp = serializers.DateTimeField(required=False)

    def validate(self, attrs):
        user = attrs.get('user')
        if user and not Membership.objects.filter(user=user, organization=attrs['org']).exists():
            raise serializers.ValidationError({'user': "User is not a member of this organization."})
        return attrs


class DateWindowSerializer(serializers.Serializer):
    """
    Query window shared by the read endpoints. Defaults to the last 30 days.
    """
    start_date = serializers.DateTimeField(required=False)
    end_date = serializers.DateTimeField(required=False)

    def validate(self, attrs):
        end = attrs.get('end_date') or timezone.now()
        start = attrs.get('start_date') or end - timedelta(days=30)
        if start > end:
            raise serializers.ValidationError("start_date must be before end_date.")
        attrs['start_date'] = start
        attrs['end_date'] = end
        return attrs


class UsageQuerySerializer(DateWindowSerializer):
    event_type = serializers.CharField(required=False)
    feature_name = serializers.CharField(required=False)
    user_id = serializers.IntegerField(required=False)


class ReportRequestSerializer(DateWindowSerializer):
    FORMAT_CHOICES = [('json', 'JSON'), ('csv', 'CSV')]

    org = serializers.UUIDField()
    report_type = serializers.ChoiceField(choices=sorted(REPORT_GENERATORS))
    format = serializers.ChoiceField(choices=FORMAT_CHOICES, default='json')
    filters = serializers.DictField(required=False, default=dict)
