from rest_framework import serializers
from .models import Alert


class AlertSerializer(serializers.ModelSerializer):
    """
    Serializer for alerts.
    """
    class Meta:
        model = Alert
        fields = [
            'id',
            'organization',
            'user',
            'alert_type',
            'severity',
            'title',
            'message',
            'metadata',
            'is_read',
            'is_dismissed',
            'created_at',
            'expires_at',
        ]
        read_only_fields = fields


class AlertActionSerializer(serializers.Serializer):
    """
    Validates alert POST actions. mark_read and dismiss need an alert id.
    """
    ACTION_CHOICES = [
        ('mark_read', 'Mark as read'),
        ('dismiss', 'Dismiss'),
        ('generate', 'Generate'),
        ('cleanup', 'Clean up expired'),
    ]

    org = serializers.UUIDField()
    action = serializers.ChoiceField(choices=ACTION_CHOICES)
    alert_id = serializers.UUIDField(required=False)

    def validate(self, attrs):
        if attrs['action'] in ('mark_read', 'dismiss') and not attrs.get('alert_id'):
            raise serializers.ValidationError({'alert_id': "Alert ID is required for this action."})
        return attrs
