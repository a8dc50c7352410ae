"""
Run the automatic break batch from the command line (or a system cron).
"""
from django.core.management.base import BaseCommand, CommandError

from timeclock.services import BreakInsertionEngine


class Command(BaseCommand):
    help = 'Insert automatic breaks for one day'

    def add_arguments(self, parser):
        parser.add_argument(
            '--date',
            type=str,
            help='Day to process, YYYY-MM-DD (default: yesterday)'
        )
        parser.add_argument(
            '--today',
            action='store_true',
            help='Process the current day instead of yesterday'
        )

    def handle(self, *args, **options):
        if options['today']:
            target, days_back = None, 0
        elif options['date']:
            target, days_back = options['date'], 0
        else:
            target, days_back = None, 1

        try:
            report = BreakInsertionEngine().insert_automatic_breaks(target, days_back=days_back)
        except ValueError as exc:
            raise CommandError(str(exc))

        for result in report.results:
            self.stdout.write(
                f"  {result.user_name}: {result.break_duration} min "
                f"{result.break_start_time.isoformat()} - {result.break_end_time.isoformat()}"
            )
        for skipped in report.skipped:
            self.stdout.write(f"  skipped {skipped.user_id}: {skipped.reason.value}")
        for failed in report.failed:
            self.stderr.write(f"  failed {failed.user_id}: {failed.error}")

        self.stdout.write(self.style.SUCCESS(
            f"Processed {report.processed_count} users "
            f"({len(report.skipped)} skipped, {len(report.failed)} failed)"
        ))
