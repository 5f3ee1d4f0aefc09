"""
Incident lifecycle coordinator

LifecycleCoordinator - drives every active incident through
OUTBOUND -> ON_SCENE -> DECISION -> INBOUND -> COMPLETE
"""
from __future__ import annotations

import asyncio
import copy
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional

from ambulance_dispatch.domains.fleet.schemas import (
    AmbulanceStatus, AmbulanceUpdate, IncidentStatus, IncidentUpdate,
)
from ambulance_dispatch.domains.fleet.store import DispatchStore
from ambulance_dispatch.domains.dispatch.destination_selector import DestinationSelector
from ambulance_dispatch.domains.dispatch.schemas import HospitalChoice
from ambulance_dispatch.domains.routing.geo_math import PolylineWalker
from ambulance_dispatch.domains.routing.hazards import HazardAdvisor
from ambulance_dispatch.domains.routing.providers import RoutingProvider
from ambulance_dispatch.domains.routing.schemas import RouteResult
from .events import (
    AmbulanceUpdateEvent, DispatchEvent, EventBus, HospitalSelectedEvent,
    SimulationAbortedEvent, SimulationCancelledEvent, SimulationCompleteEvent,
)
from .schemas import LifecycleConfig, LifecyclePhase, LifecycleState

logger = logging.getLogger(__name__)


class LifecycleSuperseded(Exception):
    """The run is no longer the registered one for its incident"""


@dataclass
class _LifecycleRun:
    config: LifecycleConfig
    state: LifecycleState
    task: Optional[asyncio.Task] = None


class LifecycleCoordinator:
    """
    Lifecycle coordinator

    One asyncio task per incident owns that incident's LifecycleState. The
    registry (incident_id -> run) is changed under a lock by start/cancel, and
    by the owning task when it finishes. Before every write the task checks
    that its run is still the registered one, so a cancelled lifecycle never
    touches the ambulance again.

    Usage:
    ```python
    coordinator = LifecycleCoordinator(store, router, hazards, destinations, bus)

    started = await coordinator.start_lifecycle(config)
    state = coordinator.lifecycle_status(config.incident_id)
    await coordinator.cancel_lifecycle(config.incident_id)

    await coordinator.shutdown()
    ```
    """

    # Wall-clock seconds between position updates
    TICK_INTERVAL = 1.0
    # Floor on a travel phase so short trips still show progress
    MIN_PHASE_DURATION = 5.0
    ON_SCENE_DWELL = 3.0

    def __init__(
        self,
        store: DispatchStore,
        router: RoutingProvider,
        hazard_advisor: HazardAdvisor,
        destination_selector: DestinationSelector,
        event_bus: EventBus,
        tick_interval_s: float = TICK_INTERVAL,
        time_scale: float = 1.0,
        min_phase_duration_s: float = MIN_PHASE_DURATION,
        on_scene_dwell_s: float = ON_SCENE_DWELL,
    ) -> None:
        if tick_interval_s <= 0 or time_scale <= 0:
            raise ValueError("tick_interval_s and time_scale must be positive")

        self._store = store
        self._router = router
        self._hazard_advisor = hazard_advisor
        self._destination_selector = destination_selector
        self._event_bus = event_bus

        self._tick_interval_s = tick_interval_s
        self._time_scale = time_scale
        self._min_phase_duration_s = min_phase_duration_s
        self._on_scene_dwell_s = on_scene_dwell_s

        # incident_id -> run
        self._runs: Dict[str, _LifecycleRun] = {}
        self._lock = asyncio.Lock()

    # =========================================================================
    # Public API
    # =========================================================================

    async def start_lifecycle(self, config: LifecycleConfig) -> bool:
        """
        Start the lifecycle of an incident

        The incident is marked DISPATCHED to the configured ambulance before
        the task is spawned, so the assignment stored on the incident always
        belongs to the lifecycle that is actually running.

        Returns:
            True if a lifecycle was started, False if one is already running
            for this incident (nothing else happens in that case)
        """
        async with self._lock:
            if config.incident_id in self._runs:
                logger.info(f"Lifecycle already active for incident {config.incident_id}, ignoring start")
                return False

            await self._record_assignment(config)
            run = _LifecycleRun(config=config, state=LifecycleState.from_config(config))
            self._runs[config.incident_id] = run
            run.task = asyncio.create_task(
                self._run_lifecycle(run),
                name=f"lifecycle-{config.incident_id}",
            )

        logger.info(
            f"Lifecycle started: incident={config.incident_id}, ambulance={config.ambulance_id}, "
            f"tier={config.ambulance_tier.value}, severity={config.severity.value}"
        )
        return True

    async def cancel_lifecycle(self, incident_id: str) -> bool:
        """
        Cancel an active lifecycle

        The lifecycle task has fully stopped by the time this returns; the
        ambulance is IDLE where it last was and the incident is CANCELLED.

        Returns:
            False if no lifecycle is active for the incident
        """
        async with self._lock:
            run = self._runs.pop(incident_id, None)
            if run is None:
                logger.info(f"Cancel requested for unknown incident {incident_id}")
                return False

            await self._stop_task(run)

            state = run.state
            state.phase = LifecyclePhase.CANCELLED
            await self._store.update_ambulance(
                state.ambulance_id, AmbulanceUpdate(status=AmbulanceStatus.IDLE)
            )
            await self._store.update_incident(
                incident_id, IncidentUpdate(status=IncidentStatus.CANCELLED)
            )

        await self._publish(SimulationCancelledEvent(
            incident_id=incident_id,
            ambulance_id=state.ambulance_id,
        ))
        logger.info(f"Lifecycle cancelled: incident={incident_id}, ambulance={state.ambulance_id}")
        return True

    def active_lifecycle_count(self) -> int:
        return len(self._runs)

    def is_active(self, incident_id: str) -> bool:
        return incident_id in self._runs

    def lifecycle_status(self, incident_id: str) -> Optional[LifecycleState]:
        """Snapshot of the incident's lifecycle state, None if not active"""
        run = self._runs.get(incident_id)
        return copy.deepcopy(run.state) if run else None

    def active_lifecycles(self) -> List[LifecycleState]:
        return [copy.deepcopy(run.state) for run in self._runs.values()]

    async def shutdown(self) -> None:
        """Cancel every running lifecycle"""
        incident_ids = list(self._runs.keys())
        if incident_ids:
            logger.info(f"Shutting down {len(incident_ids)} active lifecycle(s)")
        for incident_id in incident_ids:
            await self.cancel_lifecycle(incident_id)

    # =========================================================================
    # Lifecycle task
    # =========================================================================

    async def _run_lifecycle(self, run: _LifecycleRun) -> None:
        incident_id = run.config.incident_id
        try:
            await self._outbound(run)
            await self._on_scene(run)
            choice = await self._decide(run)
            if choice is None:
                await self._abort(run, "No hospital available")
                return
            await self._inbound(run, choice)
            await self._complete(run, choice)

        except asyncio.CancelledError:
            logger.debug(f"Lifecycle task cancelled: {incident_id}")
            raise
        except LifecycleSuperseded:
            logger.debug(f"Lifecycle task superseded: {incident_id}")
        except Exception as e:
            logger.error(f"Lifecycle task failed: incident={incident_id}, error={e}", exc_info=True)
            if self._is_current(run):
                try:
                    await self._abort(run, f"Lifecycle error: {e}")
                except Exception as abort_error:
                    logger.error(f"Could not reset after lifecycle failure: {incident_id}, error={abort_error}")
        finally:
            self._release(run)

    async def _outbound(self, run: _LifecycleRun) -> None:
        config = run.config
        route = config.precomputed_route
        if route is None:
            route = await self._router.get_route(config.ambulance_location, config.incident_location)
        route = await self._hazard_advisor.apply_penalty(route)

        self._ensure_current(run)
        run.state.enter(LifecyclePhase.OUTBOUND)
        await self._store.update_ambulance(
            config.ambulance_id, AmbulanceUpdate(status=AmbulanceStatus.EN_ROUTE)
        )
        await self._store.update_incident(
            config.incident_id,
            IncidentUpdate(
                status=IncidentStatus.EN_ROUTE,
                eta_seconds=route.eta_s,
                route=route.to_geojson(),
            ),
        )
        logger.info(
            f"Incident {config.incident_id}: OUTBOUND, eta={route.eta_s}s "
            f"distance={route.distance_m:.0f}m source={route.source.value}"
        )
        await self._travel(run, route, AmbulanceStatus.EN_ROUTE)

    async def _on_scene(self, run: _LifecycleRun) -> None:
        state = run.state

        self._ensure_current(run)
        state.enter(LifecyclePhase.ON_SCENE)
        await self._store.update_ambulance(
            state.ambulance_id, AmbulanceUpdate(status=AmbulanceStatus.ON_SCENE)
        )
        await self._store.update_incident(
            state.incident_id, IncidentUpdate(status=IncidentStatus.ON_SCENE)
        )
        await self._publish(self._update_event(state, AmbulanceStatus.ON_SCENE))
        logger.info(f"Incident {state.incident_id}: ON_SCENE")

        await asyncio.sleep(self._on_scene_dwell_s / self._time_scale)

    async def _decide(self, run: _LifecycleRun) -> Optional[HospitalChoice]:
        state = run.state

        self._ensure_current(run)
        state.enter(LifecyclePhase.DECISION)
        hospitals = await self._store.list_hospitals()
        choice = await self._destination_selector.select(
            state.incident_location,
            hospitals,
            severity=state.severity,
            required_tier=state.ambulance_tier,
            triage=state.triage,
        )
        if choice is None:
            return None

        self._ensure_current(run)
        state.destination_hospital_id = choice.hospital_id
        state.destination_location = choice.hospital.location
        await self._store.update_incident(
            state.incident_id, IncidentUpdate(destination_hospital_id=choice.hospital_id)
        )
        await self._publish(HospitalSelectedEvent(
            incident_id=state.incident_id,
            ambulance_id=state.ambulance_id,
            hospital_id=choice.hospital_id,
            hospital_name=choice.hospital.name,
            lat=choice.hospital.lat,
            lng=choice.hospital.lng,
            eta_seconds=choice.eta_s,
        ))
        logger.info(f"Incident {state.incident_id}: DECISION -> hospital {choice.hospital_id}")
        return choice

    async def _inbound(self, run: _LifecycleRun, choice: HospitalChoice) -> None:
        state = run.state
        route = choice.route

        self._ensure_current(run)
        state.enter(LifecyclePhase.INBOUND)
        await self._store.update_ambulance(
            state.ambulance_id, AmbulanceUpdate(status=AmbulanceStatus.TRANSPORTING)
        )
        await self._store.update_incident(
            state.incident_id,
            IncidentUpdate(
                status=IncidentStatus.TRANSPORTING,
                eta_seconds=route.eta_s,
                route=route.to_geojson(),
            ),
        )
        logger.info(
            f"Incident {state.incident_id}: INBOUND to hospital {choice.hospital_id}, "
            f"eta={route.eta_s}s hazard_penalty={route.hazard_penalty_s}s"
        )
        await self._travel(run, route, AmbulanceStatus.TRANSPORTING)

    async def _complete(self, run: _LifecycleRun, choice: HospitalChoice) -> None:
        state = run.state

        self._ensure_current(run)
        self._release(run)

        hospital = choice.hospital
        state.enter(LifecyclePhase.COMPLETE)
        state.progress = 1.0
        state.position = hospital.location
        await self._store.update_ambulance(
            state.ambulance_id,
            AmbulanceUpdate(
                status=AmbulanceStatus.IDLE,
                lat=hospital.lat,
                lng=hospital.lng,
                hospital_id=hospital.id,
            ),
        )
        await self._store.update_incident(
            state.incident_id, IncidentUpdate(status=IncidentStatus.COMPLETED)
        )
        await self._publish(self._update_event(state, AmbulanceStatus.IDLE))
        await self._publish(SimulationCompleteEvent(
            incident_id=state.incident_id,
            ambulance_id=state.ambulance_id,
            hospital_id=hospital.id,
        ))
        logger.info(
            f"Lifecycle complete: incident={state.incident_id}, ambulance={state.ambulance_id} "
            f"now based at hospital {hospital.id}"
        )

    async def _abort(self, run: _LifecycleRun, reason: str) -> None:
        """End the lifecycle at the scene without a hospital"""
        state = run.state

        self._ensure_current(run)
        self._release(run)

        await self._store.update_ambulance(
            state.ambulance_id, AmbulanceUpdate(status=AmbulanceStatus.IDLE)
        )
        await self._store.update_incident(
            state.incident_id, IncidentUpdate(status=IncidentStatus.COMPLETED)
        )
        await self._publish(SimulationAbortedEvent(
            incident_id=state.incident_id,
            ambulance_id=state.ambulance_id,
            reason=reason,
        ))
        logger.warning(f"Lifecycle aborted: incident={state.incident_id}, reason={reason}")

    async def _travel(self, run: _LifecycleRun, route: RouteResult, status: AmbulanceStatus) -> None:
        """
        Move the ambulance along `route` one tick at a time

        The phase lasts max(route ETA, minimum duration) simulated seconds;
        each tick advances tick_interval * time_scale of them and the last
        tick lands exactly on the end of the route.
        """
        state = run.state
        walker = PolylineWalker(route.geometry)
        duration = max(float(route.eta_s), self._min_phase_duration_s)
        advance = self._tick_interval_s * self._time_scale
        ticks = max(1, math.ceil(duration / advance))

        state.route = route
        state.phase_duration_s = duration
        state.position = walker.start
        state.heading = walker.heading_at(0.0)
        await self._publish(self._update_event(state, status, route=route))

        for tick in range(1, ticks + 1):
            await asyncio.sleep(self._tick_interval_s)

            progress = 1.0 if tick == ticks else min(tick * advance / duration, 1.0)
            position = walker.position_at(progress)

            self._ensure_current(run)
            state.progress = progress
            state.position = position
            state.heading = walker.heading_at(progress)
            await self._store.update_ambulance(
                state.ambulance_id, AmbulanceUpdate(lat=position.lat, lng=position.lng)
            )
            await self._publish(self._update_event(state, status))
            logger.debug(
                f"Incident {state.incident_id} {state.phase.value} "
                f"progress={progress:.3f} at ({position.lat:.5f},{position.lng:.5f})"
            )

    # =========================================================================
    # Internals
    # =========================================================================

    async def _record_assignment(self, config: LifecycleConfig) -> None:
        values = dict(status=IncidentStatus.DISPATCHED, assigned_ambulance_id=config.ambulance_id)
        route = config.precomputed_route
        if route is not None:
            values.update(eta_seconds=route.eta_s, route=route.to_geojson())
        await self._store.update_incident(config.incident_id, IncidentUpdate(**values))

    def _is_current(self, run: _LifecycleRun) -> bool:
        return self._runs.get(run.config.incident_id) is run

    def _ensure_current(self, run: _LifecycleRun) -> None:
        if not self._is_current(run):
            raise LifecycleSuperseded(run.config.incident_id)

    def _release(self, run: _LifecycleRun) -> None:
        if self._is_current(run):
            del self._runs[run.config.incident_id]

    async def _stop_task(self, run: _LifecycleRun) -> None:
        task = run.task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _update_event(
        self,
        state: LifecycleState,
        status: AmbulanceStatus,
        route: Optional[RouteResult] = None,
    ) -> AmbulanceUpdateEvent:
        return AmbulanceUpdateEvent(
            incident_id=state.incident_id,
            ambulance_id=state.ambulance_id,
            lat=state.position.lat,
            lng=state.position.lng,
            heading=state.heading,
            status=status,
            phase=state.phase,
            route=route.to_geojson() if route else None,
            eta_seconds=route.eta_s if route else None,
        )

    async def _publish(self, event: DispatchEvent) -> None:
        try:
            await self._event_bus.publish(event)
        except Exception as e:
            logger.warning(f"Publishing {event.type} failed: {e}")
