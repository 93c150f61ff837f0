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
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('REGISTRATION', 'Registration Created'), ('PAYMENT_VERIFIED', 'Payment Verified'), ('PAYMENT_FAILED', 'Payment Failed'), ('ACCOUNT', 'Account Provisioned'), ('SIGNUP', 'School Signup'), ('LOGIN', 'Login'), ('PASSWORD', 'Password Reset'), ('ADMIN_SETUP', 'Admin Setup')], max_length=20)),
                ('target_model', models.CharField(help_text='e.g., Registration, User', max_length=50)),
                ('target_object_id', models.CharField(blank=True, max_length=100, null=True)),
                ('details', models.TextField(blank=True, help_text='Description of what happened')),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('timestamp', models.DateTimeField(auto_now_add=True)),
                ('actor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-timestamp'],
            },
        ),
    ]
