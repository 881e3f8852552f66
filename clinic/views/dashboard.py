"""
Dashboard endpoints.

The patient dashboard summarises the caller's own appointments and
records.  The admin dashboard gives hospital wide counts and the bed
ledger; it is cached for a minute.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import IsAdminRole, IsPatientRole
from ..services.dashboard import admin_dashboard as build_admin_dashboard
from ..services.dashboard import patient_dashboard as build_patient_dashboard


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def patient_dashboard(request):
    return Response({'ok': True, 'data': build_patient_dashboard(request.user)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_dashboard(request):
    return Response({'ok': True, 'data': build_admin_dashboard()})
