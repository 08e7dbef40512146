# core/admin.py

from django.contrib import admin

from utils.admin import BaseModelAdmin
from .models import Center, StaffMember


class StaffMemberInline(admin.TabularInline):
    model = StaffMember
    fk_name = 'center'
    fields = ['user', 'full_name', 'role', 'is_active']
    extra = 0


@admin.register(Center)
class CenterAdmin(BaseModelAdmin):
    list_display = ['name', 'subscription_tier', 'currency_code', 'timezone', 'is_active']
    list_filter = ['subscription_tier', 'is_active']
    search_fields = ['name', 'email', 'phone']
    inlines = [StaffMemberInline]

    fieldsets = (
        ('Center', {
            'fields': ('name', 'phone', 'email', 'address', 'is_active')
        }),
        ('Banking Details', {
            'fields': ('bank_name', 'account_number', 'branch_code')
        }),
        ('Locale', {
            'fields': ('currency_code', 'currency_symbol', 'timezone')
        }),
        ('Subscription', {
            'fields': ('subscription_tier', 'enabled_modules')
        }),
    )


@admin.register(StaffMember)
class StaffMemberAdmin(BaseModelAdmin):
    list_display = ['full_name', 'user', 'center', 'role', 'is_active']
    list_filter = ['role', 'is_active', 'center']
    search_fields = ['full_name', 'user__username', 'user__email']
