import django.utils.timezone
from django.db import migrations, models

import registrations.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Registration',
            fields=[
                ('id', models.CharField(default=registrations.models.generate_registration_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ('category', models.CharField(choices=[('school', 'School'), ('university', 'University'), ('general', 'General Public')], max_length=20)),
                ('reference', models.CharField(max_length=100, unique=True)),
                ('amount', models.PositiveIntegerField(help_text='Naira, whole units')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('failed', 'Failed')], db_index=True, default='pending', max_length=20)),
                ('paystack_reference', models.CharField(blank=True, db_index=True, max_length=100, null=True)),
                ('paystack_access_code', models.CharField(blank=True, max_length=100, null=True)),
                ('data', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('verified_at', models.DateTimeField(blank=True, null=True)),
                ('failed_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
    ]
