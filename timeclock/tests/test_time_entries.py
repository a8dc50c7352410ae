import zoneinfo
from datetime import datetime, time, timedelta, timezone as dt_timezone

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import CustomUser
from core.models import AuditLog, LogAction, LogEntity
from timeclock.models import BreakSettings, TrackedTime


def iso(dt):
    return dt.isoformat()


class TimeEntryTestBase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.now = timezone.now().replace(microsecond=0)
        self.user = CustomUser.objects.create_user(
            email='user@test.com', password='UserPass123!', first_name='Uma', last_name='User',
        )
        self.other = CustomUser.objects.create_user(
            email='other@test.com', password='OtherPass123!', first_name='Otto', last_name='Other',
        )
        self.admin = CustomUser.objects.create_user(
            email='admin@test.com', password='AdminPass123!', role='ADMIN',
            first_name='Admin', last_name='User',
        )

    def make_entry(self, user, start, end, is_break=False):
        return TrackedTime.objects.create(
            user=user,
            start_time=start,
            end_time=end,
            duration=int((end - start).total_seconds()) if end else 0,
            is_break=is_break,
        )


class LiveTrackingTest(TimeEntryTestBase):
    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.user)

    def test_start_then_stop(self):
        resp = self.client.post('/api/time/start')
        self.assertEqual(resp.status_code, 201)
        self.assertIsNone(resp.json()['timeEntry']['endTime'])

        current = self.client.get('/api/time/current').json()['currentSession']
        self.assertIsNotNone(current)

        resp = self.client.post('/api/time/stop')
        self.assertEqual(resp.status_code, 200)
        entry = TrackedTime.objects.get(user=self.user)
        self.assertIsNotNone(entry.end_time)
        self.assertEqual(entry.duration, (entry.end_time - entry.start_time) // timedelta(seconds=1))
        self.assertEqual(
            list(AuditLog.objects.filter(user=self.user).values_list('action', flat=True).order_by('id')),
            [LogAction.START_TRACKING, LogAction.STOP_TRACKING],
        )

    def test_second_start_is_rejected(self):
        self.client.post('/api/time/start')
        resp = self.client.post('/api/time/start')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(TrackedTime.objects.filter(user=self.user).count(), 1)

    def test_stop_without_session(self):
        resp = self.client.post('/api/time/stop')
        self.assertEqual(resp.status_code, 400)

    def test_current_without_session(self):
        resp = self.client.get('/api/time/current')
        self.assertEqual(resp.json(), {'currentSession': None})

    def test_anonymous_is_rejected(self):
        self.client.force_authenticate(user=None)
        resp = self.client.post('/api/time/start')
        self.assertEqual(resp.status_code, 401)


class ManualEntryTest(TimeEntryTestBase):
    url = '/api/time/manual-entry'

    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.user)

    def test_duration_is_recomputed(self):
        start = self.now - timedelta(days=1, hours=8)
        end = self.now - timedelta(days=1)
        resp = self.client.post(self.url, {'startTime': iso(start), 'endTime': iso(end), 'duration': 5}, format='json')

        self.assertEqual(resp.status_code, 201)
        entry = TrackedTime.objects.get(user=self.user)
        self.assertEqual(entry.duration, 8 * 3600)
        audit = AuditLog.objects.get(action=LogAction.CREATE)
        self.assertEqual(audit.details['after']['duration'], 8 * 3600)

    def test_end_before_start(self):
        start = self.now - timedelta(hours=2)
        resp = self.client.post(self.url, {'startTime': iso(start), 'endTime': iso(start)}, format='json')
        self.assertEqual(resp.status_code, 400)

    def test_future_times_rejected(self):
        resp = self.client.post(self.url, {
            'startTime': iso(self.now - timedelta(hours=1)),
            'endTime': iso(self.now + timedelta(hours=1)),
        }, format='json')
        self.assertEqual(resp.status_code, 400)

    def test_outside_edit_window_rejected(self):
        start = self.now - timedelta(days=8)
        resp = self.client.post(self.url, {
            'startTime': iso(start), 'endTime': iso(start + timedelta(hours=4)),
        }, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(TrackedTime.objects.exists())

    def test_overlap_with_own_work_rejected(self):
        self.make_entry(self.user, self.now - timedelta(hours=6), self.now - timedelta(hours=2))
        resp = self.client.post(self.url, {
            'startTime': iso(self.now - timedelta(hours=3)), 'endTime': iso(self.now - timedelta(hours=1)),
        }, format='json')
        self.assertEqual(resp.status_code, 400)

    def test_overlap_with_other_user_is_fine(self):
        self.make_entry(self.other, self.now - timedelta(hours=6), self.now - timedelta(hours=2))
        resp = self.client.post(self.url, {
            'startTime': iso(self.now - timedelta(hours=3)), 'endTime': iso(self.now - timedelta(hours=1)),
        }, format='json')
        self.assertEqual(resp.status_code, 201)


class UpdateAndDeleteEntryTest(TimeEntryTestBase):
    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.user)
        self.entry = self.make_entry(self.user, self.now - timedelta(days=1, hours=8), self.now - timedelta(days=1))

    def test_update_own_entry(self):
        new_end = self.now - timedelta(days=1, hours=1)
        resp = self.client.put(f'/api/time/update/{self.entry.pk}', {
            'startTime': iso(self.entry.start_time), 'endTime': iso(new_end),
        }, format='json')

        self.assertEqual(resp.status_code, 200)
        self.entry.refresh_from_db()
        self.assertEqual(self.entry.duration, 7 * 3600)
        audit = AuditLog.objects.get(action=LogAction.UPDATE)
        self.assertEqual(audit.details['before']['duration'], 8 * 3600)
        self.assertEqual(audit.details['after']['duration'], 7 * 3600)

    def test_update_other_users_entry_forbidden(self):
        foreign = self.make_entry(self.other, self.now - timedelta(hours=5), self.now - timedelta(hours=4))
        resp = self.client.put(f'/api/time/update/{foreign.pk}', {
            'startTime': iso(foreign.start_time), 'endTime': iso(foreign.end_time),
        }, format='json')
        self.assertEqual(resp.status_code, 403)

    def test_update_entry_outside_window_forbidden(self):
        old = self.make_entry(self.user, self.now - timedelta(days=10, hours=8), self.now - timedelta(days=10))
        resp = self.client.put(f'/api/time/update/{old.pk}', {
            'startTime': iso(self.now - timedelta(hours=3)), 'endTime': iso(self.now - timedelta(hours=2)),
        }, format='json')
        self.assertEqual(resp.status_code, 403)

    def test_update_moving_start_out_of_window_rejected(self):
        resp = self.client.put(f'/api/time/update/{self.entry.pk}', {
            'startTime': iso(self.now - timedelta(days=9)), 'endTime': iso(self.entry.end_time),
        }, format='json')
        self.assertEqual(resp.status_code, 400)

    def test_update_missing_entry(self):
        resp = self.client.put('/api/time/update/999999', {
            'startTime': iso(self.entry.start_time), 'endTime': iso(self.entry.end_time),
        }, format='json')
        self.assertEqual(resp.status_code, 404)

    def test_delete_own_entry(self):
        resp = self.client.delete(f'/api/time/entries/{self.entry.pk}')
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(TrackedTime.objects.filter(pk=self.entry.pk).exists())
        audit = AuditLog.objects.get(action=LogAction.DELETE)
        self.assertEqual(audit.details['before']['id'], self.entry.pk)

    def test_delete_entry_outside_window_forbidden(self):
        old = self.make_entry(self.user, self.now - timedelta(days=60, hours=3), self.now - timedelta(days=60))
        resp = self.client.delete(f'/api/time/entries/{old.pk}')
        self.assertEqual(resp.status_code, 403)
        self.assertTrue(TrackedTime.objects.filter(pk=old.pk).exists())
        self.assertFalse(AuditLog.objects.filter(action=LogAction.DELETE).exists())

    def test_delete_other_users_entry_forbidden(self):
        foreign = self.make_entry(self.other, self.now - timedelta(hours=5), self.now - timedelta(hours=4))
        resp = self.client.delete(f'/api/time/entries/{foreign.pk}')
        self.assertEqual(resp.status_code, 403)
        self.assertTrue(TrackedTime.objects.filter(pk=foreign.pk).exists())


class DayEntriesTest(TimeEntryTestBase):
    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.user)

    def test_entry_crossing_midnight_is_shown_on_both_days(self):
        self.make_entry(
            self.user,
            datetime(2024, 3, 4, 22, tzinfo=dt_timezone.utc),
            datetime(2024, 3, 5, 2, tzinfo=dt_timezone.utc),
        )

        first = self.client.get('/api/time/entries', {'date': '2024-03-04'}).json()['entries']
        second = self.client.get('/api/time/entries', {'date': '2024-03-05'}).json()['entries']

        self.assertEqual(len(first), 1)
        self.assertTrue(first[0]['isMultiDay'])
        self.assertTrue(first[0]['isStartDay'])
        self.assertEqual(first[0]['dayDuration'], 7199)
        self.assertEqual(second[0]['dayDuration'], 7200)
        self.assertTrue(second[0]['isEndDay'])
        self.assertEqual(second[0]['duration'], 14400)

    def test_day_uses_user_timezone(self):
        self.user.timezone = 'America/New_York'
        self.user.save()
        # 21:00 - 23:00 New York on the 4th is already the 5th in UTC
        self.make_entry(
            self.user,
            datetime(2024, 3, 5, 2, tzinfo=dt_timezone.utc),
            datetime(2024, 3, 5, 4, tzinfo=dt_timezone.utc),
        )

        body = self.client.get('/api/time/entries', {'date': '2024-03-04'}).json()

        self.assertEqual(len(body['entries']), 1)
        self.assertFalse(body['entries'][0]['isMultiDay'])
        self.assertEqual(body['timezone'], 'America/New_York')

    def test_invalid_date(self):
        resp = self.client.get('/api/time/entries', {'date': 'yesterday'})
        self.assertEqual(resp.status_code, 400)


class ManualBreakTest(TimeEntryTestBase):
    url = '/api/time/manual-breaks'

    def setUp(self):
        super().setUp()
        self.user.timezone = 'Europe/Berlin'
        self.user.save()
        self.client.force_authenticate(user=self.user)
        self.day = (timezone.now() - timedelta(days=2)).astimezone(zoneinfo.ZoneInfo('Europe/Berlin')).date()

    def test_break_times_are_local(self):
        resp = self.client.post(self.url, {
            'date': self.day.isoformat(), 'startTime': '12:00', 'endTime': '12:30',
        }, format='json')

        self.assertEqual(resp.status_code, 201)
        entry = TrackedTime.objects.get(user=self.user)
        expected_start = datetime.combine(self.day, time(12), tzinfo=zoneinfo.ZoneInfo('Europe/Berlin'))
        self.assertTrue(entry.is_break)
        self.assertEqual(entry.start_time, expected_start)
        self.assertEqual(entry.duration, 1800)
        self.assertTrue(AuditLog.objects.filter(action=LogAction.MANUAL_BREAK_ADDED, entity=LogEntity.BREAK).exists())

    def test_end_before_start_rejected(self):
        resp = self.client.post(self.url, {
            'date': self.day.isoformat(), 'startTime': '12:30', 'endTime': '12:00',
        }, format='json')
        self.assertEqual(resp.status_code, 400)

    def test_missing_fields_rejected(self):
        resp = self.client.post(self.url, {'date': self.day.isoformat()}, format='json')
        self.assertEqual(resp.status_code, 400)

    def test_delete_own_break(self):
        brk = self.make_entry(self.user, self.now - timedelta(hours=3), self.now - timedelta(hours=2), is_break=True)
        resp = self.client.delete(f'{self.url}?id={brk.pk}')
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(TrackedTime.objects.filter(pk=brk.pk).exists())
        self.assertTrue(AuditLog.objects.filter(action=LogAction.BREAK_DELETED, entity_id=str(brk.pk)).exists())

    def test_break_outside_window_rejected(self):
        old_day = (timezone.now() - timedelta(days=60)).astimezone(zoneinfo.ZoneInfo('Europe/Berlin')).date()
        resp = self.client.post(self.url, {
            'date': old_day.isoformat(), 'startTime': '12:00', 'endTime': '12:30',
        }, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(TrackedTime.objects.filter(user=self.user, is_break=True).exists())

    def test_delete_break_outside_window_forbidden(self):
        old = self.make_entry(
            self.user, self.now - timedelta(days=60, hours=1), self.now - timedelta(days=60), is_break=True,
        )
        resp = self.client.delete(f'{self.url}?id={old.pk}')
        self.assertEqual(resp.status_code, 403)
        self.assertTrue(TrackedTime.objects.filter(pk=old.pk).exists())
        self.assertFalse(AuditLog.objects.filter(action=LogAction.BREAK_DELETED).exists())

    def test_delete_requires_own_break(self):
        work = self.make_entry(self.user, self.now - timedelta(hours=3), self.now - timedelta(hours=2))
        foreign = self.make_entry(self.other, self.now - timedelta(hours=3), self.now - timedelta(hours=2), is_break=True)
        self.assertEqual(self.client.delete(f'{self.url}?id={work.pk}').status_code, 404)
        self.assertEqual(self.client.delete(f'{self.url}?id={foreign.pk}').status_code, 404)
        self.assertEqual(self.client.delete(self.url).status_code, 400)


class AdminTimeEntriesTest(TimeEntryTestBase):
    url = '/api/admin/time-entries'

    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.admin)

    def test_non_admin_forbidden(self):
        self.client.force_authenticate(user=self.user)
        self.assertEqual(self.client.get(self.url).status_code, 403)

    def test_list_defaults_to_recent_closed_entries(self):
        recent = self.make_entry(self.user, self.now - timedelta(days=1, hours=2), self.now - timedelta(days=1))
        newer = self.make_entry(self.other, self.now - timedelta(hours=2), self.now - timedelta(hours=1))
        self.make_entry(self.user, self.now - timedelta(days=30, hours=2), self.now - timedelta(days=30))
        self.make_entry(self.user, self.now - timedelta(minutes=30), None)

        entries = self.client.get(self.url).json()['entries']

        self.assertEqual([e['id'] for e in entries], [newer.pk, recent.pk])
        self.assertEqual(entries[0]['userName'], 'Otto Other')

    def test_list_filters(self):
        old = self.make_entry(
            self.user,
            datetime(2024, 3, 4, 9, tzinfo=dt_timezone.utc),
            datetime(2024, 3, 4, 17, tzinfo=dt_timezone.utc),
        )
        self.make_entry(
            self.other,
            datetime(2024, 3, 4, 9, tzinfo=dt_timezone.utc),
            datetime(2024, 3, 4, 17, tzinfo=dt_timezone.utc),
        )

        entries = self.client.get(self.url, {
            'startDate': '2024-03-04', 'endDate': '2024-03-04', 'userId': str(self.user.pk),
        }).json()['entries']

        self.assertEqual([e['id'] for e in entries], [old.pk])

    def test_create_ignores_client_duration(self):
        start = self.now - timedelta(days=20, hours=8)
        end = self.now - timedelta(days=20)
        resp = self.client.post(self.url, {
            'userId': str(self.user.pk), 'startTime': iso(start), 'endTime': iso(end), 'duration': 1,
        }, format='json')

        self.assertEqual(resp.status_code, 201)
        entry = TrackedTime.objects.get(user=self.user)
        self.assertEqual(entry.duration, 8 * 3600)
        audit = AuditLog.objects.get(action=LogAction.CREATE)
        self.assertEqual(audit.user, self.user)
        self.assertEqual(audit.details['performedBy'], str(self.admin.pk))

    def test_create_for_unknown_user(self):
        resp = self.client.post(self.url, {
            'userId': '00000000-0000-0000-0000-000000000000',
            'startTime': iso(self.now - timedelta(hours=2)),
            'endTime': iso(self.now - timedelta(hours=1)),
        }, format='json')
        self.assertEqual(resp.status_code, 400)

    def test_update_and_delete(self):
        entry = self.make_entry(self.user, self.now - timedelta(days=30, hours=8), self.now - timedelta(days=30))
        resp = self.client.put(f'{self.url}/{entry.pk}', {
            'startTime': iso(entry.start_time), 'endTime': iso(entry.end_time - timedelta(hours=4)),
        }, format='json')
        self.assertEqual(resp.status_code, 200)
        entry.refresh_from_db()
        self.assertEqual(entry.duration, 4 * 3600)

        resp = self.client.delete(f'{self.url}/{entry.pk}')
        self.assertEqual(resp.status_code, 200)
        self.assertFalse(TrackedTime.objects.filter(pk=entry.pk).exists())
        self.assertEqual(
            sorted(AuditLog.objects.values_list('action', flat=True)),
            [LogAction.DELETE, LogAction.UPDATE],
        )

    def test_update_rejects_future_and_inverted_ranges(self):
        entry = self.make_entry(self.user, self.now - timedelta(hours=8), self.now - timedelta(hours=1))
        future = self.client.put(f'{self.url}/{entry.pk}', {
            'startTime': iso(entry.start_time), 'endTime': iso(self.now + timedelta(hours=1)),
        }, format='json')
        inverted = self.client.put(f'{self.url}/{entry.pk}', {
            'startTime': iso(entry.end_time), 'endTime': iso(entry.start_time),
        }, format='json')
        self.assertEqual(future.status_code, 400)
        self.assertEqual(inverted.status_code, 400)


class AdminBreakSettingsTest(TimeEntryTestBase):
    url = '/api/admin/break-settings'

    def setUp(self):
        super().setUp()
        self.client.force_authenticate(user=self.admin)

    def test_defaults_when_unset(self):
        resp = self.client.get(f'{self.url}/{self.user.pk}')
        self.assertEqual(resp.json()['breakSettings'], {
            'userId': str(self.user.pk), 'breakDuration': 30, 'autoInsert': True,
        })

    def test_upsert(self):
        resp = self.client.post(self.url, {'userId': str(self.user.pk), 'breakDuration': 45}, format='json')
        self.assertEqual(resp.status_code, 200)
        settings_obj = BreakSettings.objects.get(user=self.user)
        self.assertEqual(settings_obj.break_duration, 45)
        self.assertTrue(settings_obj.auto_insert)

        self.client.post(self.url, {'userId': str(self.user.pk), 'autoInsert': False}, format='json')
        settings_obj.refresh_from_db()
        self.assertEqual(settings_obj.break_duration, 45)
        self.assertFalse(settings_obj.auto_insert)
        self.assertEqual(AuditLog.objects.filter(entity=LogEntity.BREAK_SETTINGS).count(), 2)

    def test_negative_duration_rejected(self):
        resp = self.client.post(self.url, {'userId': str(self.user.pk), 'breakDuration': -5}, format='json')
        self.assertEqual(resp.status_code, 400)

    def test_list_includes_users_without_settings(self):
        BreakSettings.objects.create(user=self.user, break_duration=20)
        users = {u['email']: u for u in self.client.get(self.url).json()['users']}
        self.assertEqual(users['user@test.com']['breakSettings']['breakDuration'], 20)
        self.assertIsNone(users['other@test.com']['breakSettings'])
