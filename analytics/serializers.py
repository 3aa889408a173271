"""
Analytics — Serializers

Query-parameter validation for the analytics endpoints.

@file analytics/serializers.py
"""

from rest_framework import serializers

from catalog.models import Item
from core.conf import pharmastock_setting


class AnalyticsQuerySerializer(serializers.Serializer):
    period = serializers.IntegerField(required=False, min_value=1)
    category = serializers.ChoiceField(choices=Item.CategoryChoices.choices, required=False)

    def validate_period(self, value):
        maximum = pharmastock_setting('FORECAST_MAX_PERIOD_MONTHS')
        if value > maximum:
            raise serializers.ValidationError(f'Ensure this value is less than or equal to {maximum}.')
        return value


class ForecastQuerySerializer(AnalyticsQuerySerializer):
    item = serializers.UUIDField(required=False)

    def validate(self, attrs):
        if attrs.get('item') and attrs.get('category'):
            raise serializers.ValidationError('Give either item or category, not both.')
        return attrs
