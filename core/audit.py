"""
Audit trail for time tracking.

Every successful mutation of tracked time or break settings writes exactly
one AuditLog row; the engine and the manual/admin endpoints share this service.
"""

import json
import uuid
import logging
from typing import Dict, Any, Optional

from .models import AuditLog

logger = logging.getLogger(__name__)


def serialize_for_audit(data):
    """Serialize data for audit logging, handling UUIDs and other non-JSON types"""
    if data is None:
        return None

    def default_serializer(obj):
        if isinstance(obj, uuid.UUID):
            return str(obj)
        elif hasattr(obj, 'isoformat'):  # datetime objects
            return obj.isoformat()
        return str(obj)

    return json.loads(json.dumps(data, default=default_serializer))


def entry_snapshot(entry) -> Dict[str, Any]:
    """Fields of a tracked time row needed to reconstruct it from the log"""
    return {
        'id': entry.pk,
        'userId': entry.user_id,
        'startTime': entry.start_time,
        'endTime': entry.end_time,
        'duration': entry.duration,
        'isBreak': entry.is_break,
    }


class AuditTrailService:
    """Service class for writing audit records"""

    @staticmethod
    def record(
        action: str,
        entity: str,
        user=None,
        entity_id=None,
        details: Optional[Dict[str, Any]] = None,
        request=None,
    ) -> AuditLog:
        """
        Append one audit record

        Args:
            action: LogAction value
            entity: LogEntity value
            user: user the record belongs to (None for system runs)
            entity_id: primary key of the affected row
            details: structured payload, before/after values for updates
            request: HTTP request object for IP/user agent
        """
        audit_data = {
            'user': user if user is not None and getattr(user, 'pk', None) else None,
            'action': action,
            'entity': entity,
            'entity_id': str(entity_id) if entity_id is not None else None,
            'details': serialize_for_audit(details or {}),
        }

        if request is not None:
            audit_data.update({
                'ip_address': AuditTrailService._get_client_ip(request),
                'user_agent': request.META.get('HTTP_USER_AGENT', ''),
            })

        log = AuditLog.objects.create(**audit_data)
        logger.debug("Audit %s %s:%s", action, entity, audit_data['entity_id'])
        return log

    @staticmethod
    def _get_client_ip(request) -> Optional[str]:
        """Extract client IP address from request"""
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            ip = x_forwarded_for.split(',')[0].strip()
        else:
            ip = request.META.get('REMOTE_ADDR')
        return ip or None
