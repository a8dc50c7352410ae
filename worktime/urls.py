"""
URL configuration for the worktime project.
"""
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/auth/', include('accounts.urls')),        # JWT login/refresh
    path('api/time/', include('timeclock.urls')),        # Self-service tracking + auto breaks
    path('api/admin/', include('timeclock.admin_urls')),  # Admin corrections and break settings
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='api-docs'),
]
