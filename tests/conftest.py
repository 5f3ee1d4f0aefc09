"""Shared fixtures: in-memory fleet, recording event bus, fast lifecycle settings."""
from __future__ import annotations

from typing import Any, Callable, Optional

import pytest

from ambulance_dispatch.core.config import Settings
from ambulance_dispatch.domains.dispatch.destination_selector import DestinationSelector
from ambulance_dispatch.domains.dispatch.schemas import HospitalRankingPolicy
from ambulance_dispatch.domains.fleet.schemas import (
    AmbulanceStatus, AmbulanceTier, HospitalRecord,
)
from ambulance_dispatch.domains.fleet.store import InMemoryDispatchStore
from ambulance_dispatch.domains.lifecycle.coordinator import LifecycleCoordinator
from ambulance_dispatch.domains.routing.hazards import HazardAdvisor
from ambulance_dispatch.domains.routing.providers import RoutingProvider, StraightLineRouter

from factories import (
    RecordingDispatchStore, RecordingEventBus, make_ambulance, make_hospital, make_incident,
)


@pytest.fixture
def fast_settings() -> Settings:
    """Simulated time runs 10000x faster than wall-clock."""
    return Settings(
        _env_file=None,
        storage_backend="memory",
        tick_interval_s=0.001,
        time_scale=10000,
        min_phase_duration_s=5,
        on_scene_dwell_s=3,
    )


@pytest.fixture
def router() -> StraightLineRouter:
    return StraightLineRouter(points=11)


@pytest.fixture
def event_bus() -> RecordingEventBus:
    return RecordingEventBus()


@pytest.fixture
def hospitals() -> list[HospitalRecord]:
    return [
        make_hospital(1, 3.08, 101.59, capabilities=["ER"], load=20),
        make_hospital(2, 3.12, 101.65, capabilities=["PCI", "ER"], load=80),
    ]


@pytest.fixture
def store(hospitals: list[HospitalRecord]) -> RecordingDispatchStore:
    """ALS unit near the incident, BLS unit further out, busy CCT unit closest."""
    return RecordingDispatchStore(
        ambulances=[
            make_ambulance(1, 3.07, 101.60, tier=AmbulanceTier.ALS),
            make_ambulance(2, 3.20, 101.70, tier=AmbulanceTier.BLS),
            make_ambulance(3, 3.061, 101.581, tier=AmbulanceTier.CCT, status=AmbulanceStatus.TRANSPORTING),
        ],
        hospitals=hospitals,
        incidents=[make_incident()],
    )


@pytest.fixture
def make_coordinator(
    router: StraightLineRouter,
    event_bus: RecordingEventBus,
    fast_settings: Settings,
) -> Callable[..., LifecycleCoordinator]:
    """
    Factory so the coordinator (and its asyncio.Lock) is created inside the
    test's event loop.
    """

    def _make(
        store: InMemoryDispatchStore,
        bus: Any = None,
        lifecycle_router: Optional[RoutingProvider] = None,
        **overrides: Any,
    ) -> LifecycleCoordinator:
        advisor = HazardAdvisor(store, penalty_s=fast_settings.hazard_penalty_s)
        destinations = DestinationSelector(router, advisor, policy=HospitalRankingPolicy.DISTANCE)
        options = dict(
            tick_interval_s=fast_settings.tick_interval_s,
            time_scale=fast_settings.time_scale,
            min_phase_duration_s=fast_settings.min_phase_duration_s,
            on_scene_dwell_s=fast_settings.on_scene_dwell_s,
        )
        options.update(overrides)
        return LifecycleCoordinator(
            store=store,
            router=lifecycle_router or router,
            hazard_advisor=advisor,
            destination_selector=destinations,
            event_bus=bus if bus is not None else event_bus,
            **options,
        )

    return _make
