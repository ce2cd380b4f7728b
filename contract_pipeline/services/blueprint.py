"""
Contract Blueprint Builder.

Maps a loosely structured form submission onto a ``ContractBlueprint``.
Each output field is resolved from an ordered list of candidate keys
(current name first, then the legacy alias); the first candidate with a
truthy value wins, otherwise the field's default applies. Values are
passed through without validation.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from contract_pipeline.schemas.blueprint import ContractBlueprint

# (output path, candidate keys in priority order, default factory)
BLUEPRINT_FIELDS: tuple[tuple[tuple[str, ...], tuple[str, ...], Callable[[], Any]], ...] = (
    (("id",), ("id",), lambda: None),
    (("name",), ("name", "customerName"), str),
    (("client",), ("client", "customerName"), str),
    (("site",), ("site", "siteLocation"), str),
    (("capacity",), ("capacity", "ratedCapacity"), int),
    (("term",), ("term", "contractTerm"), int),
    (("type",), ("type", "solutionType"), str),
    (("status",), ("status",), lambda: "draft"),
    (("parameters", "financial", "base_rate"), ("baseRate",), int),
    (("parameters", "financial", "escalation"), ("escalation", "annualEscalation"), int),
    (("parameters", "financial", "invoice_frequency"), ("invoiceFrequency",), lambda: "monthly"),
    (("parameters", "financial", "payment_terms"), ("paymentTerms",), lambda: "net 30"),
    (("parameters", "technical", "voltage"), ("voltage", "gridParallelVoltage"), str),
    (("parameters", "technical", "servers"), ("servers", "numberOfServers"), int),
    (("parameters", "technical", "components"), ("components", "selectedComponents"), list),
    (("parameters", "operating", "output_warranty"), ("outputWarranty", "outputWarrantyPercent"), int),
    (("parameters", "operating", "efficiency"), ("efficiency", "efficiencyWarrantyPercent"), int),
)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def resolve_field(
    form_data: Mapping[str, Any],
    candidates: tuple[str, ...],
    default: Callable[[], Any],
) -> Any:
    """Return the first truthy candidate value, or a fresh default."""
    for key in candidates:
        value = form_data.get(key)
        if value:
            return value
    return default()


def build_contract_blueprint(
    form_data: Optional[Mapping[str, Any]],
    now: Callable[[], str] = _utc_now_iso,
) -> ContractBlueprint | None:
    """
    Build a normalized blueprint from raw form data.

    Args:
        form_data: Form submission keyed by field name. ``None`` yields ``None``.
        now: Supplies the ISO-8601 effective date when the form has none.

    Returns:
        The populated ContractBlueprint, or None when no input was given.
    """
    if form_data is None:
        return None

    values: dict[str, Any] = {}
    for path, candidates, default in BLUEPRINT_FIELDS:
        target = values
        for segment in path[:-1]:
            target = target.setdefault(segment, {})
        target[path[-1]] = resolve_field(form_data, candidates, default)

    values["effective_date"] = form_data.get("effectiveDate") or now()

    return ContractBlueprint.model_validate(values)
