from django.contrib import admin

from timeclock.models import BreakSettings, TrackedTime


@admin.register(TrackedTime)
class TrackedTimeAdmin(admin.ModelAdmin):
    list_display = ['user', 'start_time', 'end_time', 'duration', 'is_break']
    list_filter = ['is_break', 'start_time']
    search_fields = ['user__email', 'user__first_name', 'user__last_name']
    readonly_fields = ['duration', 'created_at', 'updated_at']
    date_hierarchy = 'start_time'


@admin.register(BreakSettings)
class BreakSettingsAdmin(admin.ModelAdmin):
    list_display = ['user', 'break_duration', 'auto_insert', 'updated_at']
    list_filter = ['auto_insert']
    search_fields = ['user__email']
