"""
Field Registry

Every field name that can appear in evidence, an OCR extraction or an
attested payload is declared here with its kind. A declared kind selects
exactly one normalizer and one comparison rule, so values never travel
through the pipeline as untyped blobs.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Union

from ..exceptions import UnknownFieldError
from .enums import FieldKind

FieldScalar = Union[str, int, Decimal, bool]


@dataclass(frozen=True)
class FieldValue:
    """
    A normalized, kind-tagged field value.

    Attributes:
        kind: Declared field kind
        value: Canonical value (ISO date string, E.164 phone, integer
            minor units, Decimal, ratio in [0, 1], bool or folded text)
        unit: Currency code for money values
    """
    kind: FieldKind
    value: FieldScalar
    unit: Optional[str] = None

    def to_dict(self) -> dict:
        value = self.value
        if isinstance(value, Decimal):
            value = str(value)
        result = {"kind": self.kind.value, "value": value}
        if self.unit:
            result["unit"] = self.unit
        return result


@dataclass(frozen=True)
class FieldSpec:
    """
    Declaration of a registry field.

    Attributes:
        name: Field name (e.g., "monthly_income")
        kind: Value kind
        importance: Weight in the overall confidence average
        tolerance: Allowed disagreement before values conflict
            (relative for money/number, absolute for ratio, unused otherwise)
    """
    name: str
    kind: FieldKind
    importance: float = 1.0
    tolerance: float = 0.0


class FieldRegistry:
    """Immutable lookup of field specs by name."""

    def __init__(self, specs: Iterable[FieldSpec]):
        self._specs: dict[str, FieldSpec] = {}
        for spec in specs:
            self._specs[spec.name] = spec

    def get(self, name: str) -> FieldSpec:
        """
        Look up a field spec.

        Raises:
            UnknownFieldError: If the field is not declared
        """
        spec = self._specs.get(name)
        if spec is None:
            raise UnknownFieldError(
                message=f"Field '{name}' is not declared in the field registry",
                details={"field": name},
            )
        return spec

    def find(self, name: str) -> Optional[FieldSpec]:
        return self._specs.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def names(self) -> list[str]:
        return sorted(self._specs)

    def with_overrides(self, specs: Iterable[FieldSpec]) -> "FieldRegistry":
        """New registry with specs added or replaced by name."""
        merged = dict(self._specs)
        for spec in specs:
            merged[spec.name] = spec
        return FieldRegistry(merged.values())


# =============================================================================
# Default Registry
# =============================================================================

_K = FieldKind

DEFAULT_FIELD_SPECS: tuple[FieldSpec, ...] = (
    # Identity
    FieldSpec("full_name", _K.NAME, importance=3.0),
    FieldSpec("birth_date", _K.DATE, importance=2.0),
    FieldSpec("document_number", _K.IDENTIFIER, importance=2.0),
    FieldSpec("expiry_date", _K.DATE, importance=1.0),
    FieldSpec("issuing_country", _K.COUNTRY, importance=1.0),
    FieldSpec("national_id", _K.IDENTIFIER, importance=2.0),
    FieldSpec("phone_number", _K.PHONE, importance=2.0),
    FieldSpec("address", _K.TEXT, importance=1.0),
    FieldSpec("city", _K.TEXT, importance=1.0),
    FieldSpec("residence_duration_months", _K.NUMBER, importance=0.5),
    # Income & employment
    FieldSpec("monthly_income", _K.MONEY, importance=3.0, tolerance=0.10),
    FieldSpec("monthly_expenses", _K.MONEY, importance=2.0, tolerance=0.10),
    FieldSpec("salary_amount", _K.MONEY, importance=2.0, tolerance=0.05),
    FieldSpec("employer_name", _K.TEXT, importance=1.0),
    FieldSpec("employment_type", _K.TEXT, importance=0.5),
    FieldSpec("employment_since", _K.DATE, importance=1.0),
    # Bank statement
    FieldSpec("bank_name", _K.TEXT, importance=1.0),
    FieldSpec("account_holder", _K.NAME, importance=1.0),
    FieldSpec("period_start", _K.DATE, importance=0.5),
    FieldSpec("period_end", _K.DATE, importance=0.5),
    FieldSpec("opening_balance", _K.MONEY, importance=1.0, tolerance=0.02),
    FieldSpec("closing_balance", _K.MONEY, importance=1.0, tolerance=0.02),
    FieldSpec("total_credits", _K.MONEY, importance=1.0, tolerance=0.02),
    FieldSpec("total_debits", _K.MONEY, importance=1.0, tolerance=0.02),
    # Utility bill
    FieldSpec("utility_provider", _K.TEXT, importance=0.5),
    FieldSpec("customer_id", _K.IDENTIFIER, importance=0.5),
    FieldSpec("amount_due", _K.MONEY, importance=0.5, tolerance=0.02),
    FieldSpec("due_date", _K.DATE, importance=0.5),
    # Mobile money
    FieldSpec("momo_operator", _K.TEXT, importance=0.5),
    FieldSpec("momo_balance", _K.MONEY, importance=1.0, tolerance=0.05),
    FieldSpec("momo_transactions_30d", _K.NUMBER, importance=2.0, tolerance=0.10),
    FieldSpec("momo_volume_30d", _K.MONEY, importance=1.0, tolerance=0.10),
    # Community finance & attestation payloads
    FieldSpec("tontine_name", _K.TEXT, importance=0.5),
    FieldSpec("membership_since", _K.DATE, importance=0.5),
    FieldSpec("contribution_amount", _K.MONEY, importance=1.0, tolerance=0.05),
    FieldSpec("discipline_rate", _K.RATIO, importance=2.0, tolerance=0.05),
    FieldSpec("cooperative_name", _K.TEXT, importance=0.5),
    FieldSpec("membership_number", _K.IDENTIFIER, importance=0.5),
    FieldSpec("member_since", _K.DATE, importance=0.5),
    FieldSpec("business_name", _K.TEXT, importance=1.0),
    FieldSpec("activity_type", _K.TEXT, importance=0.5),
    FieldSpec("monthly_revenue_estimate", _K.MONEY, importance=2.0, tolerance=0.15),
    FieldSpec("relationship_duration", _K.NUMBER, importance=0.5),
    FieldSpec("mfi_name", _K.TEXT, importance=0.5),
    FieldSpec("loan_count", _K.NUMBER, importance=1.0),
    FieldSpec("total_borrowed", _K.MONEY, importance=1.0, tolerance=0.05),
    FieldSpec("repayment_rate", _K.RATIO, importance=2.0, tolerance=0.05),
    FieldSpec("last_loan_date", _K.DATE, importance=0.5),
    FieldSpec("institution_name", _K.TEXT, importance=0.5),
    FieldSpec("account_age_months", _K.NUMBER, importance=1.0),
    FieldSpec("average_balance", _K.MONEY, importance=1.0, tolerance=0.10),
)

DEFAULT_FIELD_REGISTRY = FieldRegistry(DEFAULT_FIELD_SPECS)
