"""Abstract base for document extraction providers."""

from __future__ import annotations

import abc

from contract_pipeline.schemas.extraction import AIProvider, ExtractionOptions, ExtractionResult

# The prompt asks for the shape the document pipeline unpacks:
# extractedData / confidence / notes.
DEFAULT_EXTRACTION_PROMPT = """Analyze this Bloom Energy fuel cell contract and extract key data.

**Extract the following fields:**
- systemCapacity: System capacity in kW (must be multiple of 325kW)
- contractTerm: Contract term in years (5, 10, 15, or 20)
- baseRate: Base energy rate in $/kWh
- annualEscalation: Annual price escalation percentage
- efficiencyWarranty: LHV efficiency warranty percentage
- availabilityGuarantee: System availability guarantee percentage
- buyer: Buyer/customer name
- seller: Seller name (typically Bloom Energy)
- effectiveDate: Contract effective date (YYYY-MM-DD format)
- systemType: System type (PP, MG, AMG, OG)
- voltage: System voltage level

**Rules:**
- If a field is not found, use "NOT SPECIFIED"
- Provide confidence score (0-1) for each field
- Extract exact values from document, don't infer

**Return valid JSON only** (no markdown, no code blocks):
{
  "extractedData": {
    "systemCapacity": "value",
    "contractTerm": "value",
    ...
  },
  "confidence": {
    "systemCapacity": 0.95,
    "contractTerm": 0.90,
    ...
  },
  "notes": "any relevant observations"
}"""


class ExtractionProvider(abc.ABC):
    """Contract every extraction backend implements."""

    name: AIProvider

    @abc.abstractmethod
    async def extract(
        self,
        document: bytes,
        filename: str,
        options: ExtractionOptions,
    ) -> ExtractionResult:
        """Extract structured data from *document* and return the raw provider output."""
