"""
Custom exceptions for the time tracking API
"""
from rest_framework.exceptions import APIException


class InvalidTimeRange(APIException):
    status_code = 400
    default_detail = 'Invalid time range.'
    default_code = 'invalid_time_range'


class EntryOutsideEditWindow(APIException):
    status_code = 403
    default_detail = 'Time entries can only be modified within the edit window.'
    default_code = 'entry_outside_edit_window'


class ActiveSessionExists(APIException):
    status_code = 400
    default_detail = 'User already has an active tracking session.'
    default_code = 'active_session_exists'


class NoActiveSession(APIException):
    status_code = 400
    default_detail = 'No active tracking session found.'
    default_code = 'no_active_session'


class OverlappingTimeEntry(APIException):
    status_code = 400
    default_detail = 'Time entry overlaps an existing entry.'
    default_code = 'overlapping_time_entry'
