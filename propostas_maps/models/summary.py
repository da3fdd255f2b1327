"""End-of-run summary reported to operators."""

from __future__ import annotations

from dataclasses import dataclass, field

from propostas_maps.utils.helpers import format_file_size


@dataclass(slots=True)
class RunSummary:
    """Counts of everything one region run produced.

    Attributes:
        map_id: Google My Maps identifier.
        region_slug: Freguesia slug.
        valid_features: Geographic features accepted into the GeoJSON.
        invalid_features: Geographic features rejected by validation.
        non_geographic_features: Features from "sem local" folders.
        groups: Number of proposal groups (distinct slugs).
        resolved_images: Distinct image URLs resolved to local files.
        pages_with_location: Proposal pages with a map location.
        pages_without_location: Proposal pages without a map location.
        translated_pages: Translated proposal pages written.
        geometry_types: Accepted feature count per geometry type.
        features_with_images: Accepted features still carrying images.
        output_file: GeoJSON path.
        output_size_bytes: GeoJSON size in bytes.
    """

    map_id: str
    region_slug: str
    valid_features: int = 0
    invalid_features: int = 0
    non_geographic_features: int = 0
    groups: int = 0
    resolved_images: int = 0
    pages_with_location: int = 0
    pages_without_location: int = 0
    translated_pages: int = 0
    geometry_types: dict[str, int] = field(default_factory=dict)
    features_with_images: int = 0
    output_file: str = ""
    output_size_bytes: int = 0

    @property
    def pages(self) -> int:
        return self.pages_with_location + self.pages_without_location

    def lines(self) -> list[str]:
        """Human-readable summary lines."""
        out = [
            f"Successfully processed Google My Maps data for {self.region_slug}",
            f"  Map ID: {self.map_id}",
            f"  Valid features: {self.valid_features} ({self.invalid_features} rejected)",
            f"  Resolved images: {self.resolved_images}",
            f"  Generated pages: {self.pages} "
            f"({self.pages_with_location} with location, "
            f"{self.pages_without_location} without location)",
            f"  File size: {format_file_size(self.output_size_bytes)}",
            f"  Output: {self.output_file}",
        ]
        for geometry_type, count in self.geometry_types.items():
            out.append(f"  - {geometry_type}: {count} features")
        if self.features_with_images:
            out.append(f"  - Features with images: {self.features_with_images}")
        if self.non_geographic_features:
            out.append(f"  - Non-geographical proposals: {self.non_geographic_features}")
        if self.translated_pages:
            out.append(f"  - Translated pages: {self.translated_pages}")
        return out
