"""Structured benefit report extracted from an insurance plan document.

Fields are snake_case in Python and camelCase on the wire and in storage
(``planOverview.carrier``). Every field has a fallback so a partially readable
document still validates: text defaults to ``"Not found"``, collections to
empty lists.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

NOT_FOUND = "Not found"


class ReportModel(BaseModel):
    """Base for report sections: camelCase aliases, nulls fall back to defaults."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        # Models often answer null for fields they cannot read.
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class PlanOverview(ReportModel):
    plan_name: str = Field(NOT_FOUND, description="Name of the insurance plan")
    carrier: str = Field(NOT_FOUND, description="Insurance carrier/company name")
    plan_type: str = Field(NOT_FOUND, description="Type of plan (e.g., PPO, HMO, EPO, POS)")
    effective_date: str = Field(NOT_FOUND, description="Plan effective date if visible")
    group_number: str = Field(NOT_FOUND, description="Group number if visible")


class AmountBreakdown(ReportModel):
    """Amount split by coverage tier and network."""

    individual: str = NOT_FOUND
    family: str = NOT_FOUND
    in_network: str = NOT_FOUND
    out_of_network: str = NOT_FOUND


class Copay(ReportModel):
    service: str = Field(NOT_FOUND, description="Service type (e.g., Primary Care Visit, Specialist)")
    amount: str = Field(NOT_FOUND, description="Copay amount")
    notes: Optional[str] = Field(None, description="Additional notes or conditions")


class Coinsurance(ReportModel):
    service: str = Field(NOT_FOUND, description="Service type")
    in_network: str = Field(NOT_FOUND, description="In-network coinsurance percentage")
    out_of_network: str = Field(NOT_FOUND, description="Out-of-network coinsurance percentage")


class CostSharing(ReportModel):
    deductible: AmountBreakdown = Field(default_factory=AmountBreakdown, description="Deductible amounts")
    out_of_pocket_max: AmountBreakdown = Field(
        default_factory=AmountBreakdown, description="Out-of-pocket maximum amounts"
    )
    copays: List[Copay] = Field(default_factory=list, description="Copay amounts for various services")
    coinsurance: List[Coinsurance] = Field(default_factory=list, description="Coinsurance percentages")


class CoverageItem(ReportModel):
    service: str = Field(NOT_FOUND, description="Specific service or benefit")
    coverage: str = Field(NOT_FOUND, description="Coverage description")
    limitations: Optional[str] = Field(None, description="Any limitations or exclusions")
    prior_auth: bool = Field(False, description="Whether prior authorization is required")


class CoverageCategory(ReportModel):
    category: str = Field(NOT_FOUND, description="Coverage category (e.g., Preventive Care, Emergency, Rx)")
    items: List[CoverageItem] = Field(default_factory=list)


class DrugTier(ReportModel):
    tier: str = Field(NOT_FOUND, description="Tier name (e.g., Tier 1 - Generic)")
    copay: str = Field(NOT_FOUND, description="Copay amount")
    coinsurance: str = Field(NOT_FOUND, description="Coinsurance percentage")


class PrescriptionDrug(ReportModel):
    tiers: List[DrugTier] = Field(default_factory=list)
    deductible: str = Field(NOT_FOUND, description="Prescription drug deductible if separate")
    mail_order: str = Field(NOT_FOUND, description="Mail order pharmacy benefits")


class AdditionalBenefit(ReportModel):
    benefit: str = Field(NOT_FOUND, description="Benefit name")
    details: str = Field(NOT_FOUND, description="Benefit details and coverage")


class ExtractedField(ReportModel):
    field_name: str = Field(NOT_FOUND, description="Name/label of the field")
    field_value: str = Field(NOT_FOUND, description="Value of the field")
    category: Optional[str] = Field(None, description="Category this field belongs to")
    confidence: Literal["high", "medium", "low"] = Field(
        "low", description="Confidence in extraction accuracy"
    )


class DocumentQuality(ReportModel):
    is_readable: bool = Field(False, description="Whether the document was readable")
    image_quality: Literal["good", "fair", "poor"] = Field(
        "poor", description="Quality of the document image"
    )
    missing_info: List[str] = Field(
        default_factory=list, description="Information that appears to be missing or unclear"
    )
    suggested_actions: List[str] = Field(
        default_factory=list,
        description="Suggested actions (e.g., request clearer copy, verify with carrier)",
    )


class InsurancePlanReport(ReportModel):
    """Full benefit report for one plan document."""

    plan_overview: PlanOverview = Field(default_factory=PlanOverview)
    cost_sharing: CostSharing = Field(default_factory=CostSharing)
    coverage_details: List[CoverageCategory] = Field(
        default_factory=list, description="Detailed coverage by category"
    )
    prescription_drug: PrescriptionDrug = Field(
        default_factory=PrescriptionDrug, description="Prescription drug coverage details"
    )
    additional_benefits: List[AdditionalBenefit] = Field(
        default_factory=list,
        description="Additional benefits (dental, vision, wellness, etc.)",
    )
    important_notes: List[str] = Field(
        default_factory=list,
        description="Important notes, exclusions, or things the practice should be aware of",
    )
    extracted_fields: List[ExtractedField] = Field(
        default_factory=list,
        description="Additional fields that don't fit the structured categories above",
    )
    document_quality: DocumentQuality = Field(default_factory=DocumentQuality)

    def to_storage(self) -> Dict[str, Any]:
        """Serialize with camelCase keys for persistence."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def response_schema(cls) -> Dict[str, Any]:
        """JSON schema handed to the model as the response format."""
        return cls.model_json_schema(by_alias=True)
