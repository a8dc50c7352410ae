from django.contrib import admin

from accounts.models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(admin.ModelAdmin):
    list_display = ['email', 'first_name', 'last_name', 'role', 'timezone', 'is_active']
    list_filter = ['role', 'is_active']
    search_fields = ['email', 'first_name', 'last_name']
    fieldsets = (
        ('Basic Info', {
            'fields': ('email', 'first_name', 'last_name')
        }),
        ('Access', {
            'fields': ('role', 'is_active', 'is_staff', 'is_superuser')
        }),
        ('Time Tracking', {
            'fields': ('timezone',)
        }),
    )
