from datetime import datetime, timezone as dt_timezone
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from accounts.models import CustomUser
from timeclock.models import BreakSettings, TrackedTime
from timeclock.tasks import process_automatic_breaks


class ScheduledRunTest(TestCase):
    def setUp(self):
        self.user = CustomUser.objects.create_user(email='night@test.com', first_name='Nia', last_name='Night')
        BreakSettings.objects.create(user=self.user, break_duration=30)
        TrackedTime.objects.create(
            user=self.user,
            start_time=datetime(2024, 3, 4, 9, tzinfo=dt_timezone.utc),
            end_time=datetime(2024, 3, 4, 17, tzinfo=dt_timezone.utc),
            duration=28800,
        )

    def test_task_processes_given_day(self):
        result = process_automatic_breaks('2024-03-04')

        self.assertEqual(result['date'], '2024-03-04')
        self.assertEqual(result['processedUsers'], 1)
        self.assertEqual(TrackedTime.objects.filter(user=self.user).count(), 3)

    def test_task_defaults_to_previous_day(self):
        with mock.patch('timeclock.tasks.BreakInsertionEngine') as engine_cls:
            engine_cls.return_value.insert_automatic_breaks.return_value.failed = []
            engine_cls.return_value.insert_automatic_breaks.return_value.to_dict.return_value = {}
            result = process_automatic_breaks()

        engine_cls.return_value.insert_automatic_breaks.assert_called_once_with(None, days_back=1)
        self.assertEqual(result, {'date': None})

    def test_previous_day_is_resolved_per_user_timezone(self):
        # 00:05 UTC on the 5th is still the afternoon of the 4th in Los Angeles
        west = CustomUser.objects.create_user(email='west@test.com', timezone='America/Los_Angeles')
        BreakSettings.objects.create(user=west, break_duration=30)
        west_entry = TrackedTime.objects.create(
            user=west,
            start_time=datetime(2024, 3, 4, 17, tzinfo=dt_timezone.utc),
            end_time=datetime(2024, 3, 4, 20, tzinfo=dt_timezone.utc),
            duration=10800,
        )

        frozen = datetime(2024, 3, 5, 0, 5, tzinfo=dt_timezone.utc)
        with mock.patch('django.utils.timezone.now', return_value=frozen):
            result = process_automatic_breaks()

        self.assertEqual(result['processedUsers'], 1)
        self.assertEqual(result['breaks'][0]['userId'], str(self.user.pk))
        self.assertIn({'userId': str(west.pk), 'reason': 'no_entries'}, result['skipped'])
        self.assertTrue(TrackedTime.objects.filter(pk=west_entry.pk).exists())
        self.assertFalse(TrackedTime.objects.filter(user=west, is_break=True).exists())

    def test_management_command(self):
        out = StringIO()
        call_command('process_breaks', '--date', '2024-03-04', stdout=out)

        self.assertIn('Processed 1 users', out.getvalue())
        self.assertIn('Nia Night', out.getvalue())
        self.assertTrue(TrackedTime.objects.filter(user=self.user, is_break=True).exists())

    def test_management_command_defaults_to_previous_day(self):
        with mock.patch('timeclock.management.commands.process_breaks.BreakInsertionEngine') as engine_cls:
            report = engine_cls.return_value.insert_automatic_breaks.return_value
            report.results, report.skipped, report.failed, report.processed_count = [], [], [], 0
            call_command('process_breaks', stdout=StringIO())

        engine_cls.return_value.insert_automatic_breaks.assert_called_once_with(None, days_back=1)

    def test_management_command_rejects_bad_date(self):
        with self.assertRaises(CommandError):
            call_command('process_breaks', '--date', 'last tuesday', stdout=StringIO())
