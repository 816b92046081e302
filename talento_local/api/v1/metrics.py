from prometheus_client import Counter, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response

router = APIRouter()

# Metrics Definitions
APPLICATIONS_SUBMITTED = Counter('applications_submitted_total', 'Applications submitted by workers')
APPLICATIONS_DECIDED = Counter(
    'applications_decided_total',
    'Applications moved out of pending',
    ['outcome'] # accepted|rejected|cancelled
)
ACCEPT_CONFLICTS = Counter(
    'application_accept_conflicts_total',
    'Accept attempts refused because the application or job was already decided'
)
JOB_TRANSITIONS = Counter(
    'job_status_transitions_total',
    'Job status changes',
    ['from_status', 'to_status']
)
NOTIFICATIONS_DELIVERED = Counter(
    'notifications_delivered_total',
    'Outbox notification delivery attempts',
    ['result'] # published|failed
)

@router.get("/metrics")
async def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
