"""
Management command to approve a pending account (optionally promoting it to admin)
"""
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError


class Command(BaseCommand):
    help = "Approves a user account so it can access the back-office"

    def add_arguments(self, parser):
        parser.add_argument('username', help='Username of the account to approve')
        parser.add_argument(
            '--admin',
            action='store_true',
            help='Also grant the admin role',
        )

    def handle(self, *args, **options):
        User = get_user_model()
        try:
            user = User.objects.get(username=options['username'])
        except User.DoesNotExist:
            raise CommandError(f"User '{options['username']}' does not exist")

        user.is_approved = True
        if options['admin']:
            user.role = User.ROLE_ADMIN
        user.save(update_fields=['is_approved', 'role', 'updated_at'])
        self.stdout.write(self.style.SUCCESS(
            f"Approved '{user.username}' (role: {user.role})"
        ))
