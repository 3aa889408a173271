"""
Users — Views

JWT login / refresh come from SimpleJWT; MeView returns the current
user with active roles.

@file users/views.py
"""

from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import UserReadSerializer


class MeView(APIView):
    """GET /api/v1/auth/me/ — the authenticated user."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserReadSerializer(request.user).data)
