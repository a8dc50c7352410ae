from django_filters import rest_framework as filters

from core.timezone_utils import day_window
from .models import TrackedTime


class AdminTimeEntryFilter(filters.FilterSet):
    """Filter set for the admin time entry listing; dates are whole UTC days."""
    startDate = filters.DateFilter(method='filter_start_date')
    endDate = filters.DateFilter(method='filter_end_date')
    userId = filters.UUIDFilter(field_name='user_id')
    isBreak = filters.BooleanFilter(field_name='is_break')

    class Meta:
        model = TrackedTime
        fields = ['startDate', 'endDate', 'userId', 'isBreak']

    def filter_start_date(self, queryset, name, value):
        return queryset.filter(start_time__gte=day_window(value, 'UTC').start)

    def filter_end_date(self, queryset, name, value):
        return queryset.filter(start_time__lte=day_window(value, 'UTC').end)
