from django.urls import path
from . import views

urlpatterns = [
    # Live tracking
    path('start', views.start_tracking, name='time-start'),
    path('stop', views.stop_tracking, name='time-stop'),
    path('current', views.current_session, name='time-current'),

    # Own entries
    path('entries', views.day_entries, name='time-entries'),
    path('entries/<int:entry_id>', views.delete_entry, name='time-entry-delete'),
    path('manual-entry', views.manual_entry, name='time-manual-entry'),
    path('update/<int:entry_id>', views.update_entry, name='time-entry-update'),
    path('manual-breaks', views.manual_breaks, name='time-manual-breaks'),

    # Scheduler / admin trigger
    path('auto-breaks', views.AutoBreaksView.as_view(), name='time-auto-breaks'),
]
