from datetime import date, datetime, timedelta, timezone as dt_timezone

from django.test import SimpleTestCase, override_settings

from core.timezone_utils import WINDOW_RESOLUTION, day_window, get_user_timezone, local_date_for, to_utc


def utc(*args):
    return datetime(*args, tzinfo=dt_timezone.utc)


class DayWindowTest(SimpleTestCase):
    def test_utc_day(self):
        window = day_window('2024-03-04', 'UTC')
        self.assertEqual(window.start, utc(2024, 3, 4))
        self.assertEqual(window.end, utc(2024, 3, 5) - WINDOW_RESOLUTION)

    def test_zone_offset(self):
        window = day_window('2024-03-04', 'Europe/Berlin')
        self.assertEqual(window.start, utc(2024, 3, 3, 23))
        self.assertEqual(window.end, utc(2024, 3, 4, 23) - WINDOW_RESOLUTION)

    def test_consecutive_days_are_adjacent(self):
        window = day_window('2024-01-01', 'America/New_York')
        for _ in range(400):
            nxt = window.next()
            self.assertEqual(nxt.start - window.end, WINDOW_RESOLUTION)
            window = nxt

    def test_dst_days_are_23_and_25_hours(self):
        spring = day_window('2024-03-31', 'Europe/Berlin')
        autumn = day_window('2024-10-27', 'Europe/Berlin')
        self.assertEqual(spring.end + WINDOW_RESOLUTION - spring.start, timedelta(hours=23))
        self.assertEqual(autumn.end + WINDOW_RESOLUTION - autumn.start, timedelta(hours=25))

    def test_contains_is_inclusive(self):
        window = day_window('2024-03-04', 'UTC')
        self.assertTrue(window.contains(window.start))
        self.assertTrue(window.contains(window.end))
        self.assertFalse(window.contains(utc(2024, 3, 5)))

    def test_unknown_zone_falls_back_to_utc(self):
        window = day_window('2024-03-04', 'Mars/Olympus_Mons')
        self.assertEqual(window.start, utc(2024, 3, 4))


class LocalDateTest(SimpleTestCase):
    def test_calendar_date_string_is_kept(self):
        self.assertEqual(local_date_for('2024-03-04', 'Pacific/Auckland'), date(2024, 3, 4))

    def test_instant_is_converted_into_zone(self):
        self.assertEqual(local_date_for('2024-03-04T20:00:00Z', 'Pacific/Auckland'), date(2024, 3, 5))
        self.assertEqual(local_date_for(utc(2024, 3, 4, 2), 'America/New_York'), date(2024, 3, 3))

    def test_invalid_value(self):
        with self.assertRaises(ValueError):
            local_date_for('tomorrow', 'UTC')
        with self.assertRaises(ValueError):
            local_date_for(42, 'UTC')


class ConversionTest(SimpleTestCase):
    def test_naive_local_to_utc(self):
        self.assertEqual(to_utc(datetime(2024, 7, 1, 12), 'Europe/Berlin'), utc(2024, 7, 1, 10))

    def test_aware_value_is_normalised(self):
        value = utc(2024, 7, 1, 12)
        self.assertEqual(to_utc(value, 'Europe/Berlin'), value)

    @override_settings(DEFAULT_TIMEZONE='Europe/Vienna')
    def test_user_without_zone_gets_default(self):
        class Anonymous:
            timezone = ''
        self.assertEqual(get_user_timezone(Anonymous()), 'Europe/Vienna')
        self.assertEqual(get_user_timezone(None), 'Europe/Vienna')
