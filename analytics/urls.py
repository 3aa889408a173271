"""
Analytics — URL Configuration

@file analytics/urls.py
"""

from django.urls import path

from .views import AnalyticsView, ForecastView

app_name = 'analytics'

urlpatterns = [
    path('', AnalyticsView.as_view(), name='overview'),
    path('forecast/', ForecastView.as_view(), name='forecast'),
]
