# utils/admin.py

from django.contrib import admin
from .models import AuditLog

BASE_MODEL_READONLY_FIELDS = [
    'id', 'created_at', 'updated_at', 'created_by_id', 'updated_by_id',
    'created_from_ip', 'updated_from_ip',
]


class BaseModelAdmin(admin.ModelAdmin):
    """Audit columns are filled in by BaseModel.save and are never edited."""

    def get_readonly_fields(self, request, obj=None):
        return list(super().get_readonly_fields(request, obj)) + BASE_MODEL_READONLY_FIELDS


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = [
        'timestamp', 'action', 'entity_type', 'entity_id',
        'user_name', 'ip_address'
    ]
    list_filter = ['action', 'entity_type', 'timestamp']
    search_fields = ['entity_id', 'user_name', 'request_path']
    readonly_fields = [
        'id', 'center', 'entity_type', 'entity_id', 'action',
        'old_values', 'new_values', 'user_id', 'user_name', 'timestamp',
        'ip_address', 'user_agent', 'request_path'
    ]

    fieldsets = (
        ('What Changed', {
            'fields': ('center', 'entity_type', 'entity_id', 'action', 'old_values', 'new_values')
        }),
        ('Who Changed It', {
            'fields': ('user_id', 'user_name')
        }),
        ('When & Where', {
            'fields': ('timestamp', 'ip_address', 'request_path')
        }),
        ('Additional Info', {
            'fields': ('user_agent',),
            'classes': ('collapse',)
        }),
    )

    def has_add_permission(self, request):
        # Written by utils.audit.log_action only
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return request.user.is_superuser
