from django.core.management.base import BaseCommand, CommandError

from apps.branches.models import Branch
from apps.backups.services import BackupService


class Command(BaseCommand):
    help = 'Back up branch tickets, sales and expenses'

    def add_arguments(self, parser):
        parser.add_argument(
            '--branch',
            type=int,
            help='Branch id to back up (default: every active branch)',
        )
        parser.add_argument(
            '--name',
            type=str,
            help='Backup name (default: branch name and current time)',
        )
        parser.add_argument(
            '--prune',
            action='store_true',
            help='Delete automatic backups older than BACKUP_RETENTION_DAYS afterwards',
        )

    def handle(self, *args, **options):
        if options.get('branch'):
            branches = Branch.objects.filter(pk=options['branch'])
            if not branches.exists():
                raise CommandError(f"Branch {options['branch']} does not exist")
        else:
            branches = Branch.objects.filter(is_active=True)

        self.stdout.write(f'Backing up {branches.count()} branches...')

        for branch in branches:
            backup = BackupService.create_backup(branch, name=options.get('name'))
            self.stdout.write(
                self.style.SUCCESS(
                    f'{branch.branch_name}: {backup.ticket_count} tickets, '
                    f'{backup.sale_count} sales, {backup.expense_count} expenses (Backup: {backup.pk})'
                )
            )

        if options.get('prune'):
            pruned = BackupService.prune()
            self.stdout.write(self.style.SUCCESS(f'Pruned {pruned} old backups'))
