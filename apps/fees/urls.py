# fees/urls.py

from django.urls import path
from . import views

app_name = 'fees'

urlpatterns = [
    # =============================================================================
    # OUTSTANDING FEES
    # =============================================================================
    path('outstanding/', views.outstanding_fees, name='outstanding'),
    path('outstanding/export/csv/', views.export_outstanding_csv, name='outstanding_export_csv'),
    path('outstanding/export/excel/', views.export_outstanding_excel, name='outstanding_export_excel'),


    # =============================================================================
    # STUDENT ACCOUNTS
    # =============================================================================
    path('students/<uuid:student_id>/statement/', views.student_statement, name='student_statement'),
    path('students/<uuid:student_id>/balance/', views.student_balance, name='student_balance'),


    # =============================================================================
    # SUMMARIES
    # =============================================================================
    path('summary/', views.fee_summary, name='summary'),
    path('monthly-status/', views.monthly_status, name='monthly_status'),


    # =============================================================================
    # FEE GENERATION
    # =============================================================================
    path('generate/', views.generate_fees, name='generate'),


    # =============================================================================
    # PAYMENTS & REFUNDS
    # =============================================================================
    path('payments/', views.record_payment, name='record_payment'),
    path('payments/<uuid:payment_id>/reverse/', views.reverse_payment, name='reverse_payment'),
    path('refunds/', views.refunds, name='refunds'),
]
