from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('organizations', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Alert',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier for the alert', primary_key=True, serialize=False)),
                ('alert_type', models.CharField(choices=[('usage_threshold', 'Usage Threshold'), ('churn_risk', 'Churn Risk'), ('upsell_opportunity', 'Upsell Opportunity'), ('tier_optimization', 'Tier Optimization')], max_length=50)),
                ('severity', models.CharField(choices=[('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('critical', 'Critical')], default='medium', max_length=20)),
                ('title', models.CharField(max_length=255)),
                ('message', models.TextField()),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('is_read', models.BooleanField(default=False)),
                ('is_dismissed', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('expires_at', models.DateTimeField(blank=True, help_text='After this time the alert is hidden and eligible for cleanup', null=True)),
                ('organization', models.ForeignKey(help_text='Organization this alert is for', on_delete=django.db.models.deletion.CASCADE, related_name='alerts', to='organizations.organization')),
                ('user', models.ForeignKey(blank=True, help_text='User the alert is about (optional)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='alerts', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='alert',
            index=models.Index(fields=['organization', 'is_dismissed', 'created_at'], name='alerts_aler_organiz_7b2e4c_idx'),
        ),
        migrations.AddIndex(
            model_name='alert',
            index=models.Index(fields=['expires_at'], name='alerts_aler_expires_0d9a61_idx'),
        ),
    ]
