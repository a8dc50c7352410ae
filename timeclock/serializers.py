from rest_framework import serializers

from accounts.models import CustomUser
from core.timezone_utils import local_date_for
from .models import BreakSettings, TrackedTime


class TrackedTimeSerializer(serializers.ModelSerializer):
    userId = serializers.UUIDField(source='user_id', read_only=True)
    startTime = serializers.DateTimeField(source='start_time', read_only=True)
    endTime = serializers.DateTimeField(source='end_time', read_only=True, allow_null=True)
    isBreak = serializers.BooleanField(source='is_break', read_only=True)

    class Meta:
        model = TrackedTime
        fields = ['id', 'userId', 'startTime', 'endTime', 'duration', 'isBreak']
        read_only_fields = fields


class AdminTrackedTimeSerializer(TrackedTimeSerializer):
    userName = serializers.CharField(source='user.display_name', read_only=True)

    class Meta(TrackedTimeSerializer.Meta):
        fields = TrackedTimeSerializer.Meta.fields + ['userName']
        read_only_fields = fields


class TimeRangeSerializer(serializers.Serializer):
    """Closed interval proposed by a client; `duration` is accepted but never trusted."""
    startTime = serializers.DateTimeField()
    endTime = serializers.DateTimeField()
    duration = serializers.IntegerField(required=False, allow_null=True, min_value=0)


class AdminTimeEntryCreateSerializer(TimeRangeSerializer):
    userId = serializers.UUIDField()
    isBreak = serializers.BooleanField(required=False, default=False)

    def validate_userId(self, value):
        if not CustomUser.objects.filter(pk=value).exists():
            raise serializers.ValidationError('User not found')
        return value


class ManualBreakSerializer(serializers.Serializer):
    """A break given as local wall-clock times on a calendar date."""
    date = serializers.DateField()
    startTime = serializers.TimeField()
    endTime = serializers.TimeField()


class BreakSettingsSerializer(serializers.ModelSerializer):
    userId = serializers.UUIDField(source='user_id', read_only=True)
    breakDuration = serializers.IntegerField(source='break_duration', read_only=True)
    autoInsert = serializers.BooleanField(source='auto_insert', read_only=True)

    class Meta:
        model = BreakSettings
        fields = ['id', 'userId', 'breakDuration', 'autoInsert']
        read_only_fields = fields


class UserBreakSettingsSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source='display_name', read_only=True)
    breakSettings = serializers.SerializerMethodField()

    class Meta:
        model = CustomUser
        fields = ['id', 'email', 'name', 'role', 'breakSettings']

    def get_breakSettings(self, obj):
        settings_obj = getattr(obj, 'break_settings', None)
        if settings_obj is None:
            return None
        return BreakSettingsSerializer(settings_obj).data


class BreakSettingsUpsertSerializer(serializers.Serializer):
    userId = serializers.UUIDField()
    breakDuration = serializers.IntegerField(required=False, min_value=0)
    autoInsert = serializers.BooleanField(required=False)

    def validate_userId(self, value):
        try:
            return CustomUser.objects.get(pk=value)
        except CustomUser.DoesNotExist:
            raise serializers.ValidationError('User not found')


class AutoBreaksRequestSerializer(serializers.Serializer):
    date = serializers.CharField(required=False, allow_null=True, allow_blank=True)

    def validate_date(self, value):
        if not value:
            return None
        try:
            local_date_for(value)
        except ValueError:
            raise serializers.ValidationError('Invalid date format')
        return value
