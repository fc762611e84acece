import os

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError


class Command(BaseCommand):
    help = "Create or update the back office admin from ADMIN_USERNAME / ADMIN_PASSWORD."

    def handle(self, *args, **options):
        username = os.getenv("ADMIN_USERNAME", "")
        password = os.getenv("ADMIN_PASSWORD", "")
        if not username or not password:
            raise CommandError("ADMIN_USERNAME or ADMIN_PASSWORD not set in the environment")

        User = get_user_model()
        user, created = User.objects.get_or_create(username=username)
        user.is_staff = True
        user.set_password(password)
        user.save()

        self.stdout.write("--------------------------------------")
        self.stdout.write(self.style.SUCCESS(
            "Admin user created successfully!" if created else "Admin user updated successfully!"
        ))
        self.stdout.write(f"Username: {username}")
        self.stdout.write("Password: [HIDDEN] (read from environment)")
        self.stdout.write("--------------------------------------")
