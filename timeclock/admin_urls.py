from django.urls import path
from . import views

urlpatterns = [
    path('time-entries', views.AdminTimeEntryListCreateView.as_view(), name='admin-time-entries'),
    path('time-entries/<int:entry_id>', views.AdminTimeEntryDetailView.as_view(), name='admin-time-entry-detail'),
    path('break-settings', views.AdminBreakSettingsView.as_view(), name='admin-break-settings'),
    path('break-settings/<uuid:user_id>', views.AdminUserBreakSettingsView.as_view(), name='admin-user-break-settings'),
]
