# Recalculate Credit Management Command
from django.core.management.base import BaseCommand, CommandError

from trading.models import User
from trading.services.queries import TransactionQuery
from trading.services.users import CreditManager


class Command(BaseCommand):
    help = 'Recalculates credit for every user from their transaction history.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Run the command without saving changes to the database.',
        )
        parser.add_argument(
            '--user-id',
            type=int,
            help='Recalculate only this user.',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=1000,
            help='Batch size for bulk processing.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        batch_size = options['batch_size']

        if batch_size < 1:
            raise CommandError('--batch-size must be at least 1.')

        users = User.objects.order_by('id')
        if options['user_id'] is not None:
            users = users.filter(pk=options['user_id'])
            if not users.exists():
                raise CommandError(f"User {options['user_id']} does not exist.")

        self.recalculate_users(users, dry_run, batch_size)

        if dry_run:
            self.stdout.write(self.style.SUCCESS('Dry run completed. No changes saved.'))
        else:
            self.stdout.write(self.style.SUCCESS('Recalculation completed successfully.'))

    def recalculate_users(self, users, dry_run, batch_size):
        self.stdout.write('Recalculating user credit...')
        credit_manager = CreditManager()
        updates = []
        count = 0

        for user in users.iterator(chunk_size=batch_size):
            complete = TransactionQuery().involves_user(user.id).is_complete().transactions()
            failed = TransactionQuery().involves_user(user.id).is_incomplete().transactions()
            new_credit = credit_manager.calculate_point(complete, failed)

            if new_credit != user.credit:
                if dry_run:
                    self.stdout.write(f'  [DRY-RUN] User {user.id} ({user.email}): Credit {user.credit} -> {new_credit}')
                user.credit = new_credit
                updates.append(user)

            if len(updates) >= batch_size:
                if not dry_run:
                    User.objects.bulk_update(updates, ['credit'])
                updates = []

            count += 1
            if count % 100 == 0:
                self.stdout.write(f'Processed {count} users...')

        if updates and not dry_run:
            User.objects.bulk_update(updates, ['credit'])

        self.stdout.write(f'Processed {count} users total.')
