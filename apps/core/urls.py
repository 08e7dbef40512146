# core/urls.py
from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
     path('subscription/', views.subscription_status, name='subscription_status'),
]
