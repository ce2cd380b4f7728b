"""
Data models for normalized contract blueprints.

Field values pass through from the form submission unvalidated, so the
scalar fields are typed ``Any``. Serialize with ``by_alias=True`` to get
the camelCase keys the contract library stores.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BlueprintModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FinancialParameters(BlueprintModel):
    base_rate: Any = 0
    escalation: Any = 0
    invoice_frequency: Any = "monthly"
    payment_terms: Any = "net 30"


class TechnicalParameters(BlueprintModel):
    voltage: Any = ""
    servers: Any = 0
    components: Any = Field(default_factory=list)


class OperatingParameters(BlueprintModel):
    output_warranty: Any = 0
    efficiency: Any = 0


class BlueprintParameters(BlueprintModel):
    financial: FinancialParameters = Field(default_factory=FinancialParameters)
    technical: TechnicalParameters = Field(default_factory=TechnicalParameters)
    operating: OperatingParameters = Field(default_factory=OperatingParameters)


class ContractBlueprint(BlueprintModel):
    """Normalized contract derived from a raw form submission."""
    id: Optional[Any] = None
    name: Any = ""
    client: Any = ""
    site: Any = ""
    capacity: Any = 0
    term: Any = 0
    type: Any = ""
    effective_date: Any = ""  # ISO-8601
    status: Any = "draft"
    parameters: BlueprintParameters = Field(default_factory=BlueprintParameters)
