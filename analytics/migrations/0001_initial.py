from django.conf import settings
import django.core.validators
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
            name='UsageEvent',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier for the event', primary_key=True, serialize=False)),
                ('event_type', models.CharField(db_index=True, help_text="Kind of usage, e.g. 'api_call' or 'feature_usage'", max_length=100)),
                ('feature_name', models.CharField(blank=True, max_length=255, null=True)),
                ('usage_amount', models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('organization', models.ForeignKey(help_text='Organization this event belongs to', on_delete=django.db.models.deletion.CASCADE, related_name='usage_events', to='organizations.organization')),
                ('user', models.ForeignKey(blank=True, help_text='User who triggered this event (optional)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='usage_events', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-timestamp'],
            },
        ),
        migrations.CreateModel(
            name='UsageAggregation',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('aggregation_period', models.CharField(choices=[('daily', 'Daily'), ('weekly', 'Weekly'), ('monthly', 'Monthly')], max_length=20)),
                ('period_start', models.DateField(db_index=True)),
                ('period_end', models.DateField()),
                ('api_calls', models.IntegerField(default=0)),
                ('feature_usage', models.JSONField(blank=True, default=dict, help_text='Feature name to usage count')),
                ('session_duration_minutes', models.IntegerField(default=0, help_text='Not populated: there is no session tracking yet')),
                ('unique_features_used', models.IntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('organization', models.ForeignKey(help_text='Organization this aggregation belongs to', on_delete=django.db.models.deletion.CASCADE, related_name='usage_aggregations', to='organizations.organization')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='usage_aggregations', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-period_start'],
            },
        ),
        migrations.AddIndex(
            model_name='usageevent',
            index=models.Index(fields=['organization', 'timestamp'], name='analytics_u_organiz_5c1e2b_idx'),
        ),
        migrations.AddIndex(
            model_name='usageevent',
            index=models.Index(fields=['organization', 'event_type', 'timestamp'], name='analytics_u_organiz_8d4f0a_idx'),
        ),
        migrations.AddIndex(
            model_name='usageaggregation',
            index=models.Index(fields=['organization', 'aggregation_period', 'period_start'], name='analytics_u_organiz_3a9b7e_idx'),
        ),
        migrations.AlterUniqueTogether(
            name='usageaggregation',
            unique_together={('organization', 'user', 'aggregation_period', 'period_start')},
        ),
    ]
