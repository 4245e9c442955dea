from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('organizations', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='SubscriptionTier',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier for the tier', primary_key=True, serialize=False)),
                ('tier_name', models.CharField(help_text="Display name of the tier (e.g., 'Starter', 'Professional')", max_length=100)),
                ('tier_level', models.PositiveIntegerField(help_text='Ordinal position of the tier, 1 being the most basic')),
                ('monthly_price', models.DecimalField(decimal_places=2, max_digits=10)),
                ('annual_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('api_limit', models.PositiveIntegerField(blank=True, help_text='Monthly API call allowance; empty means unlimited', null=True)),
                ('feature_limits', models.JSONField(blank=True, default=dict)),
                ('is_active', models.BooleanField(default=True, help_text='Whether this tier is currently offered')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organization', models.ForeignKey(help_text='Organization offering this tier', on_delete=django.db.models.deletion.CASCADE, related_name='subscription_tiers', to='organizations.organization')),
            ],
            options={
                'ordering': ['tier_level'],
                'unique_together': {('organization', 'tier_name')},
            },
        ),
        migrations.AddIndex(
            model_name='subscriptiontier',
            index=models.Index(fields=['organization', 'is_active'], name='billing_sub_organiz_1f0c2d_idx'),
        ),
        migrations.CreateModel(
            name='TierAssignment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('assigned_at', models.DateTimeField(auto_now_add=True)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tier_assignments', to='organizations.organization')),
                ('tier', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignments', to='billing.subscriptiontier')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tier_assignments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-assigned_at'],
                'unique_together': {('organization', 'user')},
            },
        ),
        migrations.CreateModel(
            name='TierPerformance',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('period_start', models.DateField()),
                ('period_end', models.DateField()),
                ('active_subscriptions', models.IntegerField(default=0)),
                ('new_subscriptions', models.IntegerField(default=0)),
                ('churned_subscriptions', models.IntegerField(default=0)),
                ('upgrade_from_count', models.IntegerField(default=0, help_text='Customers who left this tier for a higher one')),
                ('upgrade_to_count', models.IntegerField(default=0, help_text='Customers who moved into this tier from a lower one')),
                ('avg_usage_percentage', models.DecimalField(decimal_places=2, default=0, help_text="Average share of the tier's API allowance used, in percent", max_digits=5)),
                ('overage_events', models.IntegerField(default=0)),
                ('revenue', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('tier', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='performance', to='billing.subscriptiontier')),
            ],
            options={
                'ordering': ['-period_start'],
                'unique_together': {('tier', 'period_start', 'period_end')},
            },
        ),
        migrations.CreateModel(
            name='RevenueAnalytics',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('period_start', models.DateField()),
                ('period_end', models.DateField()),
                ('mrr', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('arr', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('new_customers', models.IntegerField(default=0)),
                ('churned_customers', models.IntegerField(default=0)),
                ('upgraded_customers', models.IntegerField(default=0)),
                ('downgraded_customers', models.IntegerField(default=0)),
                ('total_customers', models.IntegerField(default=0)),
                ('churn_rate', models.DecimalField(decimal_places=4, default=0, help_text='Churned customers over the starting customer base, as a fraction', max_digits=5)),
                ('ltv', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('cac', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('arpu', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='revenue_analytics', to='organizations.organization')),
            ],
            options={
                'verbose_name_plural': 'Revenue analytics',
                'ordering': ['period_start'],
                'unique_together': {('organization', 'period_start', 'period_end')},
            },
        ),
    ]
