import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from ..permissions import IsAdminOrCronSecret
from ..services.appointments import sweep_expired_approvals

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsAdminOrCronSecret])
def check_appointments(request):
    """Run the expired-approval sweep on demand (external schedulers)."""
    updated = sweep_expired_approvals()
    logger.info('cron sweep via API: %s updated', updated)
    return Response({'ok': True, 'updatedCount': updated})
