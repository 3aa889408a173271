"""
Analytics — Views

GET /analytics/?period=&category=       dashboard: series, distribution, recommendations
GET /analytics/forecast/?item=|category=&period=

@file analytics/views.py
"""

from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import AnalyticsQuerySerializer, ForecastQuerySerializer
from .services import ForecastService


class AnalyticsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        params = AnalyticsQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        data = ForecastService.get_analytics(
            period_months=params.validated_data.get('period'),
            category=params.validated_data.get('category'),
        )
        return Response(data)


class ForecastView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        params = ForecastQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        forecast = ForecastService.forecast(
            item_id=params.validated_data.get('item'),
            category=params.validated_data.get('category'),
            period_months=params.validated_data.get('period'),
        )
        return Response(forecast.to_dict())
