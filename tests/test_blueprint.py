"""Tests for the contract blueprint builder."""

from __future__ import annotations

import re

from contract_pipeline.schemas.blueprint import ContractBlueprint
from contract_pipeline.services.blueprint import BLUEPRINT_FIELDS, build_contract_blueprint, resolve_field

PRIMARY_FORM = {
    "id": "c-100",
    "name": "Acme Corp",
    "client": "Acme Corp",
    "site": "Fremont, CA",
    "capacity": 1300,
    "term": 15,
    "type": "PP",
    "baseRate": 0.135,
    "escalation": 2.5,
    "voltage": "480V",
    "servers": 4,
    "components": ["RI", "BESS"],
    "outputWarranty": 90,
    "efficiency": 52,
}

LEGACY_FORM = {
    "id": "c-100",
    "customerName": "Acme Corp",
    "siteLocation": "Fremont, CA",
    "ratedCapacity": 1300,
    "contractTerm": 15,
    "solutionType": "PP",
    "baseRate": 0.135,
    "annualEscalation": 2.5,
    "gridParallelVoltage": "480V",
    "numberOfServers": 4,
    "selectedComponents": ["RI", "BESS"],
    "outputWarrantyPercent": 90,
    "efficiencyWarrantyPercent": 52,
}

FIXED_NOW = "2025-01-15T12:00:00.000Z"


def _fixed_now() -> str:
    return FIXED_NOW


class TestBuildContractBlueprint:

    def test_no_input_returns_none(self) -> None:
        assert build_contract_blueprint(None) is None

    def test_empty_record_takes_every_default(self) -> None:
        blueprint = build_contract_blueprint({}, now=_fixed_now)

        assert isinstance(blueprint, ContractBlueprint)
        assert blueprint.model_dump(by_alias=True) == {
            "id": None,
            "name": "",
            "client": "",
            "site": "",
            "capacity": 0,
            "term": 0,
            "type": "",
            "effectiveDate": FIXED_NOW,
            "status": "draft",
            "parameters": {
                "financial": {
                    "baseRate": 0,
                    "escalation": 0,
                    "invoiceFrequency": "monthly",
                    "paymentTerms": "net 30",
                },
                "technical": {"voltage": "", "servers": 0, "components": []},
                "operating": {"outputWarranty": 0, "efficiency": 0},
            },
        }

    def test_default_effective_date_is_current_iso_timestamp(self) -> None:
        blueprint = build_contract_blueprint({})

        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", blueprint.effective_date)

    def test_legacy_aliases_match_primary_names(self) -> None:
        primary = build_contract_blueprint(PRIMARY_FORM, now=_fixed_now)
        legacy = build_contract_blueprint(LEGACY_FORM, now=_fixed_now)

        assert primary == legacy

    def test_primary_name_wins_over_alias(self) -> None:
        blueprint = build_contract_blueprint(
            {"capacity": 650, "ratedCapacity": 975, "name": "Primary", "customerName": "Legacy"},
            now=_fixed_now,
        )

        assert blueprint.capacity == 650
        assert blueprint.name == "Primary"
        assert blueprint.client == "Legacy"

    def test_falsy_primary_falls_through_to_alias(self) -> None:
        blueprint = build_contract_blueprint({"capacity": 0, "ratedCapacity": 325, "site": ""}, now=_fixed_now)

        assert blueprint.capacity == 325
        assert blueprint.site == ""

    def test_values_pass_through_unvalidated(self) -> None:
        blueprint = build_contract_blueprint(
            {"capacity": "-12 kW", "term": 999, "status": "archived", "effectiveDate": "not-a-date"},
        )

        assert blueprint.capacity == "-12 kW"
        assert blueprint.term == 999
        assert blueprint.status == "archived"
        assert blueprint.effective_date == "not-a-date"

    def test_component_defaults_are_not_shared(self) -> None:
        first = build_contract_blueprint({}, now=_fixed_now)
        second = build_contract_blueprint({}, now=_fixed_now)

        first.parameters.technical.components.append("RI")

        assert second.parameters.technical.components == []

    def test_input_is_not_mutated(self) -> None:
        form = dict(LEGACY_FORM)
        build_contract_blueprint(form, now=_fixed_now)

        assert form == LEGACY_FORM


class TestResolveField:

    def test_returns_first_truthy_candidate(self) -> None:
        assert resolve_field({"a": None, "b": "x"}, ("a", "b"), str) == "x"

    def test_falls_back_to_default(self) -> None:
        assert resolve_field({}, ("a", "b"), lambda: "monthly") == "monthly"

    def test_every_output_field_has_candidates(self) -> None:
        for path, candidates, _ in BLUEPRINT_FIELDS:
            assert path
            assert candidates
