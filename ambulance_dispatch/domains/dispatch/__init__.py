"""
Dispatch

Chooses which ambulance answers an incident and which hospital receives the
patient.

Core components:
- CandidateSelector: ranks idle ambulances of sufficient tier by ETA
- DestinationSelector: capability filter plus distance or weighted ranking
- DispatchService: claims the best candidate and starts the incident lifecycle

Usage:
```python
from ambulance_dispatch.domains.dispatch import DispatchRequest, DispatchService

result = await service.dispatch_to_incident(DispatchRequest(
    incident_id="INC-1",
    lat=3.06,
    lng=101.58,
    required_tier=AmbulanceTier.ALS,
))
```
"""

from .schemas import (
    HospitalRankingPolicy,
    AmbulanceCandidate,
    HospitalChoice,
    DispatchRequest,
    DispatchResult,
    CandidateResponse,
    HospitalChoiceResponse,
)
from .candidate_selector import CandidateSelector, filter_eligible
from .destination_selector import (
    DestinationSelector,
    required_capabilities,
    filter_by_capabilities,
    weighted_score,
)
from .service import DispatchService
from .router import router as dispatch_router

__all__ = [
    "HospitalRankingPolicy",
    "AmbulanceCandidate",
    "HospitalChoice",
    "DispatchRequest",
    "DispatchResult",
    "CandidateResponse",
    "HospitalChoiceResponse",
    "CandidateSelector",
    "filter_eligible",
    "DestinationSelector",
    "required_capabilities",
    "filter_by_capabilities",
    "weighted_score",
    "DispatchService",
    "dispatch_router",
]
