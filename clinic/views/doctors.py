from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..serializers.availability import AvailabilityQuerySerializer
from ..services.availability import available_slots


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def doctor_availability(request, pk: int):
    """Free slots of a doctor on ``?date=YYYY-MM-DD``."""
    q = AvailabilityQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    result = available_slots(pk, q.validated_data['date'])
    return Response({'ok': True, **result.as_payload()})
