# students/admin.py

from django.contrib import admin

from utils.admin import BaseModelAdmin
from .models import Student, Subject, StudentSubject


class StudentSubjectInline(admin.TabularInline):
    model = StudentSubject
    fk_name = 'student'
    fields = ['subject', 'enrolled_date', 'is_active']
    extra = 0


@admin.register(Student)
class StudentAdmin(BaseModelAdmin):
    list_display = ['full_name', 'student_number', 'center', 'status', 'credit_balance', 'registration_fee_paid']
    list_filter = ['status', 'registration_fee_paid', 'center']
    search_fields = ['full_name', 'student_number', 'phone', 'parent_phone']
    inlines = [StudentSubjectInline]


@admin.register(Subject)
class SubjectAdmin(BaseModelAdmin):
    list_display = ['name', 'center', 'monthly_fee', 'is_active']
    list_filter = ['is_active', 'center']
    search_fields = ['name']
