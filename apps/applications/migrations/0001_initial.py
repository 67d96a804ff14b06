import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Application',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('submitted', 'Submitted'), ('admin_screened', 'Admin screened'), ('approved_high', 'Approved'), ('terms_set', 'Terms set'), ('min_due', 'Minimum due'), ('min_paid', 'Minimum paid'), ('countersigned', 'Countersigned'), ('occupied', 'Occupied'), ('rejected', 'Rejected'), ('withdrawn', 'Withdrawn')], db_index=True, default='draft', max_length=20)),
                ('payment_plan', models.JSONField(blank=True, null=True)),
                ('upfronts', models.JSONField(blank=True, default=dict)),
                ('move_in_date', models.DateField(blank=True, null=True)),
                ('countersign', models.JSONField(blank=True, default=dict)),
                ('terms', models.JSONField(blank=True, null=True)),
                ('property_label', models.CharField(blank=True, max_length=200)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_applications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'applications',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'updated_at'], name='application_status_b1c2d3_idx'),
                    models.Index(fields=['created_at'], name='application_created_e4f5a6_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ApplicationEvent',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('at', models.DateTimeField()),
                ('by', models.CharField(max_length=255)),
                ('event', models.CharField(max_length=64)),
                ('from_status', models.CharField(blank=True, max_length=20)),
                ('to_status', models.CharField(blank=True, max_length=20)),
                ('reason', models.CharField(blank=True, max_length=64)),
                ('meta', models.JSONField(blank=True, default=dict)),
                ('application', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='timeline', to='applications.application')),
            ],
            options={
                'db_table': 'application_events',
                'ordering': ['at', 'id'],
                'indexes': [
                    models.Index(fields=['application', 'at'], name='application_applica_a7b8c9_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('kind', models.CharField(choices=[('upfront', 'Upfront'), ('operating', 'Operating (legacy upfront)'), ('deposit', 'Deposit'), ('rent', 'Rent'), ('fee', 'Fee')], max_length=20)),
                ('status', models.CharField(choices=[('created', 'Created'), ('processing', 'Processing'), ('succeeded', 'Succeeded'), ('failed', 'Failed'), ('canceled', 'Canceled'), ('returned', 'Returned')], default='created', max_length=20)),
                ('amount_cents', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('external_reference', models.CharField(blank=True, db_index=True, max_length=128)),
                ('created_at', models.DateTimeField()),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('application', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='applications.application')),
            ],
            options={
                'db_table': 'application_payments',
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['application', 'created_at'], name='application_applica_d0e1f2_idx'),
                    models.Index(fields=['status'], name='application_status_a3b4c5_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='LeaseSignature',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('signed_at', models.DateTimeField()),
                ('application', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='signatures', to='applications.application')),
                ('signer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lease_signatures', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'lease_signatures',
                'ordering': ['signed_at'],
                'unique_together': {('application', 'signer')},
            },
        ),
        migrations.CreateModel(
            name='ApplicationMember',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('role', models.CharField(choices=[('primary', 'Primary applicant'), ('co_applicant', 'Co-applicant')], default='co_applicant', max_length=20)),
                ('acknowledged_at', models.DateTimeField(blank=True, null=True)),
                ('joined_at', models.DateTimeField(auto_now_add=True)),
                ('application', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='members', to='applications.application')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='application_memberships', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'application_members',
                'ordering': ['joined_at'],
                'unique_together': {('application', 'user')},
            },
        ),
    ]
