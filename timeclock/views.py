import logging
from datetime import datetime, timedelta

from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import exceptions, generics, permissions, status
from rest_framework.authentication import SessionAuthentication
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.authentication import JWTAuthentication

from accounts.models import CustomUser
from accounts.permissions import IsAdmin
from core.audit import AuditTrailService, entry_snapshot
from core.exceptions import ActiveSessionExists, NoActiveSession
from core.models import LogAction, LogEntity
from core.timezone_utils import get_user_timezone, to_utc, user_day_window
from .authentication import CronSecretAuthentication
from .filters import AdminTimeEntryFilter
from .invariants import (
    duration_seconds,
    ensure_entry_editable,
    ensure_no_overlap,
    edit_window_days,
    reconcile_duration,
    validate_time_range,
)
from .models import BreakSettings, TrackedTime
from .permissions import IsAdminOrCronTrigger
from .serializers import (
    AdminTimeEntryCreateSerializer,
    AdminTrackedTimeSerializer,
    AutoBreaksRequestSerializer,
    BreakSettingsSerializer,
    BreakSettingsUpsertSerializer,
    ManualBreakSerializer,
    TimeRangeSerializer,
    TrackedTimeSerializer,
    UserBreakSettingsSerializer,
)
from .services import BreakInsertionEngine

logger = logging.getLogger(__name__)


# Self-service tracking

@api_view(['POST'])
@permission_classes([permissions.IsAuthenticated])
def start_tracking(request):
    """Open a running entry for the current user"""
    with transaction.atomic():
        # Serialise concurrent starts of the same user
        CustomUser.objects.select_for_update().filter(pk=request.user.pk).first()
        if TrackedTime.objects.filter(user=request.user, end_time__isnull=True).exists():
            raise ActiveSessionExists('User already has an active tracking session')

        entry = TrackedTime.objects.create(
            user=request.user,
            start_time=timezone.now(),
            end_time=None,
            duration=0,
            is_break=False,
        )
        AuditTrailService.record(
            action=LogAction.START_TRACKING,
            entity=LogEntity.TIME_ENTRY,
            user=request.user,
            entity_id=entry.pk,
            details={'message': 'Time tracking started', 'startTime': entry.start_time},
            request=request,
        )

    return Response(
        {'message': 'Time tracking started', 'timeEntry': TrackedTimeSerializer(entry).data},
        status=status.HTTP_201_CREATED,
    )


@api_view(['POST'])
@permission_classes([permissions.IsAuthenticated])
def stop_tracking(request):
    """Close the running entry at the current instant"""
    with transaction.atomic():
        entry = (
            TrackedTime.objects.select_for_update()
            .filter(user=request.user, end_time__isnull=True)
            .order_by('-start_time')
            .first()
        )
        if entry is None:
            raise NoActiveSession('No active tracking session found')

        entry.end_time = timezone.now()
        entry.duration = duration_seconds(entry.start_time, entry.end_time)
        entry.save(update_fields=['end_time', 'duration', 'updated_at'])
        AuditTrailService.record(
            action=LogAction.STOP_TRACKING,
            entity=LogEntity.TIME_ENTRY,
            user=request.user,
            entity_id=entry.pk,
            details={
                'message': 'Time tracking stopped',
                'startTime': entry.start_time,
                'endTime': entry.end_time,
                'duration': entry.duration,
            },
            request=request,
        )

    return Response({'message': 'Time tracking stopped', 'timeEntry': TrackedTimeSerializer(entry).data})


@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def current_session(request):
    entry = (
        TrackedTime.objects.filter(user=request.user, end_time__isnull=True)
        .order_by('-start_time')
        .first()
    )
    return Response({'currentSession': TrackedTimeSerializer(entry).data if entry else None})


@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def day_entries(request):
    """
    Entries of the current user touching one local calendar day.

    Entries crossing midnight are returned on both days, with `dayDuration`
    holding only the part inside the requested day.
    """
    date_param = request.query_params.get('date')
    try:
        window = user_day_window(request.user, date_param or None)
    except ValueError:
        return Response({'error': 'Invalid date format'}, status=status.HTTP_400_BAD_REQUEST)

    entries = TrackedTime.objects.filter(
        user=request.user,
        end_time__isnull=False,
        start_time__lte=window.end,
        end_time__gte=window.start,
    ).order_by('start_time')

    tz_str = get_user_timezone(request.user)
    results = []
    for entry in entries:
        data = TrackedTimeSerializer(entry).data
        is_start_day = window.contains(entry.start_time)
        is_end_day = window.contains(entry.end_time)
        is_multi_day = not (is_start_day and is_end_day)
        day_duration = entry.duration
        if is_multi_day:
            day_duration = duration_seconds(
                max(entry.start_time, window.start),
                min(entry.end_time, window.end),
            )
        data.update({
            'isMultiDay': is_multi_day,
            'dayDuration': day_duration,
            'isStartDay': is_start_day,
            'isEndDay': is_end_day,
            'displayDate': window.day.isoformat(),
        })
        results.append(data)

    return Response({'entries': results, 'date': window.day.isoformat(), 'timezone': tz_str})


@api_view(['POST'])
@permission_classes([permissions.IsAuthenticated])
def manual_entry(request):
    serializer = TimeRangeSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    start = serializer.validated_data['startTime']
    end = serializer.validated_data['endTime']

    validate_time_range(start, end, enforce_edit_window=True)

    with transaction.atomic():
        ensure_no_overlap(request.user.pk, start, end)
        entry = TrackedTime.objects.create(
            user=request.user,
            start_time=start,
            end_time=end,
            duration=reconcile_duration(start, end, serializer.validated_data.get('duration')),
        )
        AuditTrailService.record(
            action=LogAction.CREATE,
            entity=LogEntity.TIME_ENTRY,
            user=request.user,
            entity_id=entry.pk,
            details={'message': 'Manual time entry created', 'after': entry_snapshot(entry)},
            request=request,
        )

    return Response(
        {'message': 'Manual time entry created', 'timeEntry': TrackedTimeSerializer(entry).data},
        status=status.HTTP_201_CREATED,
    )


@api_view(['PUT'])
@permission_classes([permissions.IsAuthenticated])
def update_entry(request, entry_id):
    entry = get_object_or_404(TrackedTime, pk=entry_id)
    if entry.user_id != request.user.pk:
        raise exceptions.PermissionDenied('You can only update your own time entries')
    ensure_entry_editable(entry)

    serializer = TimeRangeSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    start = serializer.validated_data['startTime']
    end = serializer.validated_data['endTime']
    validate_time_range(start, end, enforce_edit_window=True)

    with transaction.atomic():
        if not entry.is_break:
            ensure_no_overlap(request.user.pk, start, end, exclude_pk=entry.pk)
        before = entry_snapshot(entry)
        entry.start_time = start
        entry.end_time = end
        entry.duration = reconcile_duration(start, end, serializer.validated_data.get('duration'))
        entry.save()
        AuditTrailService.record(
            action=LogAction.UPDATE,
            entity=LogEntity.TIME_ENTRY,
            user=request.user,
            entity_id=entry.pk,
            details={'message': 'Time entry updated by user', 'before': before, 'after': entry_snapshot(entry)},
            request=request,
        )

    return Response({'message': 'Time entry updated successfully', 'timeEntry': TrackedTimeSerializer(entry).data})


@api_view(['DELETE'])
@permission_classes([permissions.IsAuthenticated])
def delete_entry(request, entry_id):
    entry = get_object_or_404(TrackedTime, pk=entry_id)
    if entry.user_id != request.user.pk:
        raise exceptions.PermissionDenied('You can only delete your own time entries')
    ensure_entry_editable(entry)

    with transaction.atomic():
        before = entry_snapshot(entry)
        entry.delete()
        AuditTrailService.record(
            action=LogAction.DELETE,
            entity=LogEntity.TIME_ENTRY,
            user=request.user,
            entity_id=before['id'],
            details={'message': 'Time entry deleted by user', 'before': before},
            request=request,
        )

    return Response({'message': 'Time entry deleted successfully'})


@api_view(['POST', 'DELETE'])
@permission_classes([permissions.IsAuthenticated])
def manual_breaks(request):
    if request.method == 'DELETE':
        return _delete_manual_break(request)

    serializer = ManualBreakSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    tz_str = get_user_timezone(request.user)
    start = to_utc(datetime.combine(data['date'], data['startTime']), tz_str)
    end = to_utc(datetime.combine(data['date'], data['endTime']), tz_str)
    validate_time_range(start, end, enforce_edit_window=True)

    with transaction.atomic():
        break_entry = TrackedTime.objects.create(
            user=request.user,
            start_time=start,
            end_time=end,
            duration=duration_seconds(start, end),
            is_break=True,
        )
        AuditTrailService.record(
            action=LogAction.MANUAL_BREAK_ADDED,
            entity=LogEntity.BREAK,
            user=request.user,
            entity_id=break_entry.pk,
            details={
                'breakStartTime': start,
                'breakEndTime': end,
                'durationSeconds': break_entry.duration,
                'timezone': tz_str,
            },
            request=request,
        )

    return Response(
        {'success': True, 'break': TrackedTimeSerializer(break_entry).data},
        status=status.HTTP_201_CREATED,
    )


def _delete_manual_break(request):
    break_id = request.query_params.get('id')
    if not break_id:
        return Response({'error': 'Break ID is required'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        break_id = int(break_id)
    except ValueError:
        return Response({'error': 'Invalid ID'}, status=status.HTTP_400_BAD_REQUEST)

    break_entry = TrackedTime.objects.filter(pk=break_id, user=request.user, is_break=True).first()
    if break_entry is None:
        return Response({'error': 'Break not found or unauthorized'}, status=status.HTTP_404_NOT_FOUND)
    ensure_entry_editable(break_entry)

    with transaction.atomic():
        before = entry_snapshot(break_entry)
        break_entry.delete()
        AuditTrailService.record(
            action=LogAction.BREAK_DELETED,
            entity=LogEntity.BREAK,
            user=request.user,
            entity_id=break_id,
            details={'before': before},
            request=request,
        )

    return Response({'success': True, 'message': 'Break deleted successfully'})


# Admin time entries

class AdminTimeEntryListCreateView(generics.GenericAPIView):
    """
    GET: closed entries of all users, newest first (default: last N days).
    POST: create an entry for any user; duration is always recomputed.
    """
    permission_classes = [IsAdmin]
    serializer_class = AdminTrackedTimeSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_class = AdminTimeEntryFilter

    def get_queryset(self):
        qs = TrackedTime.objects.filter(end_time__isnull=False).select_related('user')
        if not self.request.query_params.get('startDate'):
            qs = qs.filter(start_time__gte=timezone.now() - timedelta(days=edit_window_days()))
        return qs.order_by('-start_time', 'user_id')

    def get(self, request):
        entries = self.filter_queryset(self.get_queryset())
        return Response({'entries': AdminTrackedTimeSerializer(entries, many=True).data})

    def post(self, request):
        serializer = AdminTimeEntryCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        start, end = data['startTime'], data['endTime']
        validate_time_range(start, end)

        with transaction.atomic():
            if not data['isBreak']:
                ensure_no_overlap(data['userId'], start, end)
            entry = TrackedTime.objects.create(
                user_id=data['userId'],
                start_time=start,
                end_time=end,
                duration=reconcile_duration(start, end, data.get('duration')),
                is_break=data['isBreak'],
            )
            AuditTrailService.record(
                action=LogAction.CREATE,
                entity=LogEntity.TIME_ENTRY,
                user=entry.user,
                entity_id=entry.pk,
                details={
                    'message': 'Time entry created by admin',
                    'performedBy': request.user.pk,
                    'after': entry_snapshot(entry),
                },
                request=request,
            )

        return Response(
            {'message': 'Time entry created successfully', 'timeEntry': TrackedTimeSerializer(entry).data},
            status=status.HTTP_201_CREATED,
        )


class AdminTimeEntryDetailView(APIView):
    permission_classes = [IsAdmin]

    def put(self, request, entry_id):
        entry = get_object_or_404(TrackedTime, pk=entry_id)
        serializer = TimeRangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        start = serializer.validated_data['startTime']
        end = serializer.validated_data['endTime']
        validate_time_range(start, end)

        with transaction.atomic():
            if not entry.is_break:
                ensure_no_overlap(entry.user_id, start, end, exclude_pk=entry.pk)
            before = entry_snapshot(entry)
            entry.start_time = start
            entry.end_time = end
            entry.duration = reconcile_duration(start, end, serializer.validated_data.get('duration'))
            entry.save()
            AuditTrailService.record(
                action=LogAction.UPDATE,
                entity=LogEntity.TIME_ENTRY,
                user=entry.user,
                entity_id=entry.pk,
                details={
                    'message': 'Time entry updated',
                    'performedBy': request.user.pk,
                    'before': before,
                    'after': entry_snapshot(entry),
                },
                request=request,
            )

        return Response({'message': 'Time entry updated successfully', 'timeEntry': TrackedTimeSerializer(entry).data})

    def delete(self, request, entry_id):
        entry = get_object_or_404(TrackedTime, pk=entry_id)
        with transaction.atomic():
            owner = entry.user
            before = entry_snapshot(entry)
            entry.delete()
            AuditTrailService.record(
                action=LogAction.DELETE,
                entity=LogEntity.TIME_ENTRY,
                user=owner,
                entity_id=before['id'],
                details={
                    'message': 'Time entry deleted by admin',
                    'performedBy': request.user.pk,
                    'before': before,
                },
                request=request,
            )
        return Response({'message': 'Time entry deleted successfully'})


# Break settings

class AdminBreakSettingsView(APIView):
    permission_classes = [IsAdmin]

    def get(self, request):
        users = CustomUser.objects.select_related('break_settings').order_by('first_name', 'last_name', 'email')
        return Response({'users': UserBreakSettingsSerializer(users, many=True).data})

    def post(self, request):
        serializer = BreakSettingsUpsertSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        user = data['userId']

        with transaction.atomic():
            settings_obj, created = BreakSettings.objects.select_for_update().get_or_create(user=user)
            before = {'breakDuration': settings_obj.break_duration, 'autoInsert': settings_obj.auto_insert}
            if 'breakDuration' in data:
                settings_obj.break_duration = data['breakDuration']
            if 'autoInsert' in data:
                settings_obj.auto_insert = data['autoInsert']
            settings_obj.save()
            AuditTrailService.record(
                action=LogAction.UPDATE,
                entity=LogEntity.BREAK_SETTINGS,
                user=user,
                entity_id=settings_obj.pk,
                details={
                    'performedBy': request.user.pk,
                    'created': created,
                    'before': None if created else before,
                    'after': {'breakDuration': settings_obj.break_duration, 'autoInsert': settings_obj.auto_insert},
                },
                request=request,
            )

        return Response({'breakSettings': BreakSettingsSerializer(settings_obj).data})


class AdminUserBreakSettingsView(APIView):
    permission_classes = [IsAdmin]

    def get(self, request, user_id):
        settings_obj = BreakSettings.objects.filter(user_id=user_id).first()
        if settings_obj is None:
            return Response({'breakSettings': {
                'userId': str(user_id),
                'breakDuration': BreakSettings.DEFAULT_BREAK_DURATION,
                'autoInsert': True,
            }})
        return Response({'breakSettings': BreakSettingsSerializer(settings_obj).data})


# Automatic breaks trigger

class AutoBreaksView(APIView):
    """
    Run the automatic break batch for one day.

    Callable by an admin (JWT or session) or by the scheduler presenting
    the cron secret as bearer token. Every rejection answers 401.
    """
    authentication_classes = [CronSecretAuthentication, JWTAuthentication, SessionAuthentication]
    permission_classes = [IsAdminOrCronTrigger]

    def permission_denied(self, request, message=None, code=None):
        raise exceptions.NotAuthenticated(detail=message)

    def post(self, request):
        serializer = AutoBreaksRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({'success': False, 'error': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        try:
            report = BreakInsertionEngine().insert_automatic_breaks(
                serializer.validated_data.get('date'),
                request=request,
            )
        except Exception:
            logger.exception("Automatic break processing failed")
            return Response(
                {'success': False, 'error': 'Failed to insert automatic breaks'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response({'success': True, **report.to_dict()})
