"""
Users — Serializers

@file users/serializers.py
"""

from rest_framework import serializers

from .models import User


class UserReadSerializer(serializers.ModelSerializer):
    roles = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'phone', 'email', 'first_name', 'last_name',
            'is_staff', 'is_active', 'date_joined', 'roles',
        ]
        read_only_fields = fields

    def get_roles(self, obj):
        return obj.role_names
