from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence
from uuid import UUID

from svc_customizer.domain.models import PersonalizationFeeLine, PersonalizationFieldSchema
from svc_customizer.domain.money import round2, to_decimal
from svc_customizer.errors import ValidationError
from svc_customizer.repos.profiles_repo import ProfilesRepo
from svc_customizer.services.normalizer import PERSONALIZATION_VALUE_MAX
from svc_customizer.services.sanitize import clean_text


def compute_fees(
    schemas: Sequence[PersonalizationFieldSchema],
    personalization: Mapping[str, Any],
    quantity: int,
) -> List[PersonalizationFeeLine]:
    """
    Validate personalization values against their field schemas and price them.

    Inactive schemas are ignored; the rest are processed in sort order and a
    fee line is only emitted for a positive amount.
    """
    active = sorted((s for s in schemas if s.active), key=lambda s: s.sort_order)
    qty = to_decimal(quantity)

    lines: List[PersonalizationFeeLine] = []
    for schema in active:
        key = schema.key
        value = clean_text(personalization.get(key) or "", PERSONALIZATION_VALUE_MAX)

        if schema.required and not value:
            raise ValidationError(f"Missing required personalization field: {key}")
        if schema.min_length and len(value) < schema.min_length:
            raise ValidationError(f"Personalization too short: {key}")
        if schema.max_length and len(value) > schema.max_length:
            raise ValidationError(f"Personalization too long: {key}")

        pricing = schema.pricing
        fee = round2(
            to_decimal(pricing.flat_fee)
            + to_decimal(pricing.per_character) * len(value)
            + to_decimal(pricing.per_item) * qty
        )
        if fee > 0:
            lines.append(PersonalizationFeeLine(name=f"personalization:{key}", amount=float(fee)))

    return lines


class FeeCalculator:
    def __init__(self, profiles: Optional[ProfilesRepo] = None) -> None:
        self.profiles = profiles or ProfilesRepo()

    async def personalization_fees(
        self,
        *,
        store_id: UUID,
        profile_id: UUID,
        personalization: Mapping[str, Any],
        quantity: int,
    ) -> List[PersonalizationFeeLine]:
        schemas = await self.profiles.list_active_field_schemas(store_id=store_id, profile_id=profile_id)
        return compute_fees(schemas, personalization, quantity)
