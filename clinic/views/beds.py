from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import IsAdminRole
from ..serializers.beds import BedUpdateSerializer
from ..services import ledger
from ..services.audit import log_action


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def bed_status(request):
    return Response({'ok': True, 'data': ledger.get_status().as_payload()})


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_beds(request):
    """Read the ledger, or occupy/release one bed, or overwrite the counts."""
    if request.method == 'GET':
        return Response({'ok': True, 'data': ledger.get_status().as_payload()})

    s = BedUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    action = vd.get('action')
    if action == 'occupy':
        result = ledger.allocate()
    elif action == 'release':
        result, released = ledger.release()
        if not released:
            raise ValidationError('No beds are currently in use')
    else:
        result = ledger.set_capacity(total_beds=vd.get('totalBeds'), beds_in_use=vd.get('bedsInUse'))
    log_action(user=request.user, action='beds_update', object_type='bed_ledger', object_id=1,
               detail={'action': action or 'set', **result.as_payload()})
    return Response({'ok': True, 'data': result.as_payload()})
