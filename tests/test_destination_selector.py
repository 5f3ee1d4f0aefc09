"""Tests for hospital destination selection.

Capability requirements, the match-or-fallback filter, both ranking policies
and the hazard penalty on the incident -> hospital route.
"""
from __future__ import annotations

import asyncio

import pytest

from ambulance_dispatch.domains.dispatch.destination_selector import (
    DestinationSelector, filter_by_capabilities, required_capabilities, weighted_score,
)
from ambulance_dispatch.domains.dispatch.schemas import HospitalRankingPolicy
from ambulance_dispatch.domains.fleet.schemas import AmbulanceTier, Severity, TriageType
from ambulance_dispatch.domains.fleet.store import InMemoryDispatchStore
from ambulance_dispatch.domains.routing.geo_math import Coordinates
from ambulance_dispatch.domains.routing.hazards import HazardAdvisor
from ambulance_dispatch.domains.routing.providers import StraightLineRouter
from ambulance_dispatch.domains.routing.schemas import Hazard

from factories import INCIDENT_LAT, INCIDENT_LNG, make_hospital


INCIDENT = Coordinates(INCIDENT_LAT, INCIDENT_LNG)


def _selector(policy=HospitalRankingPolicy.DISTANCE, hazards=()) -> DestinationSelector:
    router = StraightLineRouter(points=11)
    advisor = HazardAdvisor(InMemoryDispatchStore(hazards=hazards))
    return DestinationSelector(router, advisor, policy=policy)


def test_required_capabilities_from_triage_and_tier() -> None:
    assert required_capabilities(Severity.HIGH, None, TriageType.STEMI) == {"PCI"}
    assert required_capabilities(Severity.HIGH, None, TriageType.STROKE) == {"STROKE", "NEURO", "CT"}
    assert required_capabilities(Severity.HIGH, None, TriageType.GENERAL) == set()
    # triage only counts for HIGH severity
    assert required_capabilities(Severity.LOW, None, TriageType.STEMI) == set()
    assert required_capabilities(Severity.LOW, AmbulanceTier.ALS) == {"PCI", "TRAUMA", "STROKE"}
    assert required_capabilities(Severity.LOW, AmbulanceTier.BLS) == set()
    assert required_capabilities(Severity.HIGH, AmbulanceTier.CCT, TriageType.PEDIATRIC) == {
        "PCI", "TRAUMA", "NEURO", "BURNS", "PEDIATRIC",
    }


def test_filter_matches_capabilities_case_insensitively() -> None:
    hospitals = [
        make_hospital(1, 3.08, 101.59, capabilities=["er"]),
        make_hospital(2, 3.12, 101.65, capabilities=["pci"]),
    ]

    assert [h.id for h in filter_by_capabilities(hospitals, {"PCI"})] == [2]


def test_filter_falls_back_to_all_hospitals_when_nothing_matches() -> None:
    """A required capability no hospital offers never leaves the patient without options."""

    hospitals = [
        make_hospital(1, 3.08, 101.59, capabilities=["ER"]),
        make_hospital(2, 3.12, 101.65, capabilities=["PCI"]),
    ]

    assert [h.id for h in filter_by_capabilities(hospitals, {"BURNS"})] == [1, 2]
    assert [h.id for h in filter_by_capabilities(hospitals, set())] == [1, 2]


def test_stemi_patient_goes_to_pci_hospital_even_if_farther() -> None:
    hospitals = [
        make_hospital(1, 3.07, 101.58, capabilities=["ER"]),
        make_hospital(2, 3.15, 101.70, capabilities=["PCI"]),
    ]

    choice = asyncio.run(_selector().select(INCIDENT, hospitals, Severity.HIGH, None, TriageType.STEMI))

    assert choice is not None
    assert choice.hospital_id == 2


def test_fallback_when_no_hospital_has_required_capability() -> None:
    hospitals = [
        make_hospital(1, 3.07, 101.58, capabilities=["ER"]),
        make_hospital(2, 3.15, 101.70, capabilities=["ER"]),
    ]

    ranked = asyncio.run(_selector().rank(INCIDENT, hospitals, Severity.HIGH, None, TriageType.BURNS))

    assert [c.hospital_id for c in ranked] == [1, 2]


def test_no_hospitals_returns_none() -> None:
    assert asyncio.run(_selector().select(INCIDENT, [], Severity.HIGH)) is None


def test_distance_policy_picks_nearest() -> None:
    near = make_hospital(1, 3.07, 101.58, load=95)
    far = make_hospital(2, 3.10, 101.58, load=0)

    choice = asyncio.run(_selector(HospitalRankingPolicy.DISTANCE).select(INCIDENT, [far, near]))

    assert choice.hospital_id == 1
    assert choice.score is None


def test_weighted_policy_trades_eta_against_load() -> None:
    """A nearly-full nearby hospital loses to an empty one a few minutes further away."""

    near = make_hospital(1, 3.07, 101.58, load=95)
    far = make_hospital(2, 3.10, 101.58, load=0)

    ranked = asyncio.run(_selector(HospitalRankingPolicy.WEIGHTED).rank(INCIDENT, [near, far]))

    assert [c.hospital_id for c in ranked] == [2, 1]
    assert ranked[0].score > ranked[1].score


def test_weighted_score_formula() -> None:
    assert weighted_score(0, 0) == pytest.approx(1.0)
    assert weighted_score(100, 3600) == pytest.approx(0.0)
    assert weighted_score(100, 7200) == pytest.approx(0.0)
    # missing load counts as 50%
    assert weighted_score(None, 0) == pytest.approx(0.8)
    assert weighted_score(0, 3600) == pytest.approx(0.4)


def test_rank_limit_returns_top_n() -> None:
    hospitals = [make_hospital(i, 3.06 + i * 0.01, 101.58) for i in range(1, 6)]

    ranked = asyncio.run(_selector().rank(INCIDENT, hospitals, limit=3))

    assert [c.hospital_id for c in ranked] == [1, 2, 3]


def test_hazard_penalty_applies_to_hospital_route() -> None:
    hospital = make_hospital(1, 3.10, 101.58)
    plain = asyncio.run(_selector().select(INCIDENT, [hospital]))

    hazard = Hazard(id=1, hazard_type="FLOOD", min_lat=3.075, max_lat=3.085, min_lng=101.57, max_lng=101.59)
    penalised = asyncio.run(_selector(hazards=[hazard]).select(INCIDENT, [hospital]))

    assert penalised.eta_s == plain.eta_s + 600
    assert penalised.route.hazard_penalty_s == 600
