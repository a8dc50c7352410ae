from django.contrib import admin

from core.models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['timestamp', 'user', 'action', 'entity', 'entity_id', 'ip_address']
    list_filter = ['action', 'entity']
    search_fields = ['user__email', 'entity_id']
    readonly_fields = ['timestamp', 'user', 'action', 'entity', 'entity_id', 'details', 'ip_address', 'user_agent']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
