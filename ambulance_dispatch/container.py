"""
Application wiring

DispatchContainer builds the store, router, hazard advisor, selectors,
lifecycle coordinator and event bus once per application.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ambulance_dispatch.core.config import Settings, StorageBackend
from ambulance_dispatch.core.database import create_session_factory
from ambulance_dispatch.core.websocket import ConnectionManager
from ambulance_dispatch.domains.dispatch.candidate_selector import CandidateSelector
from ambulance_dispatch.domains.dispatch.destination_selector import DestinationSelector
from ambulance_dispatch.domains.dispatch.schemas import HospitalRankingPolicy
from ambulance_dispatch.domains.dispatch.service import DispatchService
from ambulance_dispatch.domains.fleet.repository import SqlDispatchStore
from ambulance_dispatch.domains.fleet.store import DispatchStore, InMemoryDispatchStore
from ambulance_dispatch.domains.lifecycle.coordinator import LifecycleCoordinator
from ambulance_dispatch.domains.routing.hazards import HazardAdvisor
from ambulance_dispatch.domains.routing.providers import RoutingProvider, build_router

logger = logging.getLogger(__name__)


@dataclass
class DispatchContainer:
    settings: Settings
    store: DispatchStore
    router: RoutingProvider
    hazard_advisor: HazardAdvisor
    candidate_selector: CandidateSelector
    destination_selector: DestinationSelector
    coordinator: LifecycleCoordinator
    dispatch_service: DispatchService
    ws_manager: ConnectionManager

    @classmethod
    def build(cls, settings: Settings, store: Optional[DispatchStore] = None) -> "DispatchContainer":
        if store is None:
            store = _build_store(settings)

        router = build_router(settings)
        hazard_advisor = HazardAdvisor(store, penalty_s=settings.hazard_penalty_s)
        candidate_selector = CandidateSelector(router)
        destination_selector = DestinationSelector(
            router,
            hazard_advisor,
            policy=HospitalRankingPolicy(settings.hospital_ranking),
        )
        ws_manager = ConnectionManager(send_timeout_s=settings.ws_send_timeout_s)
        coordinator = LifecycleCoordinator(
            store=store,
            router=router,
            hazard_advisor=hazard_advisor,
            destination_selector=destination_selector,
            event_bus=ws_manager,
            tick_interval_s=settings.tick_interval_s,
            time_scale=settings.time_scale,
            min_phase_duration_s=settings.min_phase_duration_s,
            on_scene_dwell_s=settings.on_scene_dwell_s,
        )
        dispatch_service = DispatchService(store, candidate_selector, destination_selector, coordinator)

        logger.info(
            f"Dispatch container ready: storage={type(store).__name__}, router={type(router).__name__}, "
            f"hospital_ranking={destination_selector.policy.value}"
        )
        return cls(
            settings=settings,
            store=store,
            router=router,
            hazard_advisor=hazard_advisor,
            candidate_selector=candidate_selector,
            destination_selector=destination_selector,
            coordinator=coordinator,
            dispatch_service=dispatch_service,
            ws_manager=ws_manager,
        )

    async def shutdown(self) -> None:
        await self.coordinator.shutdown()
        await self.ws_manager.close()
        if isinstance(self.store, SqlDispatchStore):
            await self.store.close()


def _build_store(settings: Settings) -> DispatchStore:
    if settings.storage_backend == StorageBackend.MEMORY:
        return InMemoryDispatchStore()

    return SqlDispatchStore(create_session_factory(settings))
