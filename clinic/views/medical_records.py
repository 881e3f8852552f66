from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import MedicalRecord
from ..serializers.inventory import format_medical_record


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_medical_records(request):
    """The caller's own medical records, newest first."""
    qs = (
        MedicalRecord.objects.filter(patient=request.user)
        .prefetch_related('medications')
        .order_by('-date')
    )
    return Response({'ok': True, 'data': [format_medical_record(r) for r in qs]})
