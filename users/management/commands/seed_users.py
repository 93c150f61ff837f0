from django.core.management.base import BaseCommand

from users.services import create_admin_user, create_school_user, get_user_by_email

DEFAULT_ACCOUNTS = [
    {'email': 'admin@educonf.com', 'password': 'admin123', 'role': 'admin', 'name': 'Admin User'},
    {'email': 'school@example.com', 'password': 'school123', 'role': 'school', 'school_name': 'Demo High School'},
]


class Command(BaseCommand):
    help = 'Creates the demo admin and school accounts if they do not exist yet'

    def handle(self, *args, **options):
        for account in DEFAULT_ACCOUNTS:
            if get_user_by_email(account['email']):
                self.stdout.write(f"{account['email']} already exists, skipping")
                continue

            if account['role'] == 'admin':
                create_admin_user(email=account['email'], password=account['password'], name=account['name'])
            else:
                create_school_user(
                    email=account['email'], password=account['password'], school_name=account['school_name']
                )
            self.stdout.write(self.style.SUCCESS(f"Created {account['role']} account {account['email']}"))
