"""
Management command to add the default cake quoter options for a user
"""
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from bakery.quoting.models import QuoteOption, SIZE, FLAVOR, FILLING, DECORATION

User = get_user_model()

DEFAULT_OPTIONS = [
    (SIZE, 'Small', '20.00'),
    (SIZE, 'Medium', '35.00'),
    (SIZE, 'Large', '50.00'),
    (FLAVOR, 'Vanilla', '4.00'),
    (FLAVOR, 'Chocolate', '5.00'),
    (FLAVOR, 'Strawberry', '6.00'),
    (FILLING, 'Cream', '3.00'),
    (FILLING, 'Dulce de leche', '5.00'),
    (FILLING, 'Fruit', '7.00'),
    (DECORATION, 'Custom text', '5.00'),
    (DECORATION, 'Extra fruit', '8.00'),
    (DECORATION, 'Special icing', '10.00'),
    (DECORATION, 'Fondant figures', '15.00'),
]


class Command(BaseCommand):
    help = "Adds the default cake quoter options (sizes, flavors, fillings, decorations) for a user"

    def add_arguments(self, parser):
        parser.add_argument('username', help='Owner of the options')
        parser.add_argument(
            '--clear',
            action='store_true',
            help="Delete the user's existing quoter options before adding the defaults",
        )

    def handle(self, *args, **options):
        try:
            owner = User.objects.get(username=options['username'])
        except User.DoesNotExist:
            raise CommandError(f"User '{options['username']}' does not exist")

        self.stdout.write(self.style.SUCCESS("=" * 60))
        self.stdout.write(self.style.SUCCESS(f"ADDING QUOTER OPTIONS FOR {owner.username}"))
        self.stdout.write(self.style.SUCCESS("=" * 60))

        if options['clear']:
            deleted, _ = QuoteOption.objects.filter(owner=owner).delete()
            self.stdout.write(self.style.WARNING(f"Cleared {deleted} existing options."))

        created_count = 0
        skipped_count = 0
        for category, name, price in DEFAULT_OPTIONS:
            _, created = QuoteOption.objects.get_or_create(
                owner=owner,
                category=category,
                name=name,
                defaults={'price': Decimal(price)},
            )
            if created:
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f"  + {category}: {name} ({price})"))
            else:
                skipped_count += 1
                self.stdout.write(f"  - {category}: {name} (already exists)")

        self.stdout.write("")
        self.stdout.write(self.style.SUCCESS(f"Created: {created_count}"))
        self.stdout.write(f"Skipped (already exist): {skipped_count}")
