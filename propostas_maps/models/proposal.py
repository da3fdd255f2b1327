"""Data model for a proposal grouped by slug.

A proposal may be backed by several placemarks (one per physical site,
plus optionally one in the "Propostas s/ Local" folder). The grouper
folds them into one ``ProposalGroup`` whose ``combined_properties`` feed
the generated proposal page.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from propostas_maps.models.feature import Feature, PropertyValue


@dataclass(slots=True)
class ProposalGroup:
    """All features sharing one slug.

    Attributes:
        slug: Trimmed, non-empty join key.
        has_map_location: ``True`` once any geographic feature joined.
        geographic_features: Geographic members in encounter order.
        non_geographic_features: Non-geographic members in encounter order.
        combined_properties: Deterministic merge of member properties.
        all_images: Deduplicated raw image URLs from every member.
        resolved_images: Local paths of ``all_images`` that resolved.
    """

    slug: str
    has_map_location: bool = False
    geographic_features: list[Feature] = field(default_factory=list)
    non_geographic_features: list[Feature] = field(default_factory=list)
    combined_properties: dict[str, PropertyValue] = field(default_factory=dict)
    all_images: list[str] = field(default_factory=list)
    resolved_images: list[str] = field(default_factory=list)

    @property
    def features(self) -> list[Feature]:
        """Geographic members followed by non-geographic members."""
        return [*self.geographic_features, *self.non_geographic_features]

    @property
    def eixo(self) -> str:
        value = self.combined_properties.get("eixo")
        return value.strip() if isinstance(value, str) else ""
