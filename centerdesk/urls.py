"""
URL configuration for the centerdesk project.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    # Django admin
    path('admin/', admin.site.urls),

    # Core app - subscription status
    path('core/', include(('core.urls', 'core'), namespace='core')),

    # Students app
    path('students/', include(('students.urls', 'students'), namespace='students')),

    # Fees app - outstanding balances, payments, refunds
    path('fees/', include(('fees.urls', 'fees'), namespace='fees')),
]
