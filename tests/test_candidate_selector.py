"""Tests for ambulance candidate selection.

Eligibility (IDLE + tier hierarchy) and ETA ordering, all through the
straight-line router so results are deterministic.
"""
from __future__ import annotations

import asyncio

from ambulance_dispatch.domains.dispatch.candidate_selector import CandidateSelector, filter_eligible
from ambulance_dispatch.domains.fleet.schemas import AmbulanceStatus, AmbulanceTier
from ambulance_dispatch.domains.routing.geo_math import Coordinates
from ambulance_dispatch.domains.routing.providers import StraightLineRouter

from factories import INCIDENT_LAT, INCIDENT_LNG, make_ambulance


INCIDENT = Coordinates(INCIDENT_LAT, INCIDENT_LNG)


def _mixed_fleet():
    return [
        make_ambulance(1, 3.070, 101.600, tier=AmbulanceTier.RRV),
        make_ambulance(2, 3.080, 101.600, tier=AmbulanceTier.BLS),
        make_ambulance(3, 3.090, 101.600, tier=AmbulanceTier.ALS),
        make_ambulance(4, 3.100, 101.600, tier=AmbulanceTier.CCT),
        make_ambulance(5, 3.061, 101.581, tier=AmbulanceTier.CCT, status=AmbulanceStatus.EN_ROUTE),
    ]


def test_single_idle_als_unit_is_selected() -> None:
    """One idle ALS unit near the incident is chosen with a positive ETA."""

    selector = CandidateSelector(StraightLineRouter())
    fleet = [make_ambulance(1, 3.07, 101.60, tier=AmbulanceTier.ALS)]

    candidates = asyncio.run(selector.select(INCIDENT, fleet, AmbulanceTier.ALS))

    assert [c.ambulance_id for c in candidates] == [1]
    assert candidates[0].eta_s > 0
    assert candidates[0].route.destination == INCIDENT


def test_required_tier_keeps_only_equal_or_higher_tiers() -> None:
    """Every candidate meets the required tier, and raising it only removes units."""

    selector = CandidateSelector(StraightLineRouter())
    fleet = _mixed_fleet()

    by_tier = {
        tier: {c.ambulance_id for c in asyncio.run(selector.select(INCIDENT, fleet, tier))}
        for tier in (None, AmbulanceTier.RRV, AmbulanceTier.BLS, AmbulanceTier.ALS, AmbulanceTier.CCT)
    }

    assert by_tier[None] == {1, 2, 3, 4}
    assert by_tier[AmbulanceTier.BLS] == {2, 3, 4}
    assert by_tier[AmbulanceTier.ALS] == {3, 4}
    assert by_tier[AmbulanceTier.CCT] == {4}
    assert by_tier[AmbulanceTier.CCT] <= by_tier[AmbulanceTier.ALS] <= by_tier[AmbulanceTier.BLS] <= by_tier[None]


def test_only_idle_units_are_candidates() -> None:
    """The closest unit is busy and must not be offered."""

    selector = CandidateSelector(StraightLineRouter())

    candidates = asyncio.run(selector.select(INCIDENT, _mixed_fleet()))

    assert 5 not in [c.ambulance_id for c in candidates]
    assert all(c.ambulance.status == AmbulanceStatus.IDLE for c in candidates)


def test_candidates_sorted_by_eta_then_distance_then_id() -> None:
    selector = CandidateSelector(StraightLineRouter())
    fleet = [
        make_ambulance(7, 3.100, 101.600),
        make_ambulance(5, 3.070, 101.600),
        make_ambulance(2, 3.070, 101.600),  # same spot as 5
    ]

    candidates = asyncio.run(selector.select(INCIDENT, fleet))

    assert [c.ambulance_id for c in candidates] == [2, 5, 7]
    etas = [c.eta_s for c in candidates]
    assert etas == sorted(etas)


def test_no_idle_units_returns_empty_list() -> None:
    selector = CandidateSelector(StraightLineRouter())
    fleet = [
        make_ambulance(1, 3.07, 101.60, status=AmbulanceStatus.EN_ROUTE),
        make_ambulance(2, 3.08, 101.60, status=AmbulanceStatus.TRANSPORTING),
    ]

    assert asyncio.run(selector.select(INCIDENT, fleet)) == []
    assert asyncio.run(selector.select(INCIDENT, [])) == []


def test_filter_eligible_does_not_route() -> None:
    eligible = filter_eligible(_mixed_fleet(), AmbulanceTier.ALS)

    assert [a.id for a in eligible] == [3, 4]
