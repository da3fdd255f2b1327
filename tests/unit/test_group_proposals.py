"""Tests for the tidy_features and group_proposals activities.

Covers:
- Key lower-casing and whitelisting (idempotent)
- Grouping by trimmed slug, slugless features skipped
- Merge rules: first non-blank wins, descricao/sumario appended
- has_map_location once any geographic feature joins
- Image URL collection and de-duplication
- Determinism of repeated folds
- Folding in batches matches a single fold
"""

from __future__ import annotations

import logging

import pytest

from propostas_maps.activities.group_proposals import (
    add_feature,
    dedupe,
    group_proposals,
    split_media_links,
)
from propostas_maps.activities.tidy_features import tidy_feature, tidy_features
from propostas_maps.models.feature import Feature, Point
from propostas_maps.models.proposal import ProposalGroup


def _geo(**properties: object) -> Feature:
    return Feature(properties=dict(properties), geometry=Point(lon=-9.1, lat=38.7))  # type: ignore[arg-type]


def _non_geo(**properties: object) -> Feature:
    return Feature(properties=dict(properties), is_geographic=False)  # type: ignore[arg-type]


class TestTidyFeatures:
    """Key normalisation and whitelisting."""

    def test_lowercases_and_whitelists(self) -> None:
        feature = _geo(Name="Jardim", SLUG="j", styleUrl="#icon", Eixo="Ambiente")
        tidy = tidy_feature(feature)
        assert tidy.properties == {"name": "Jardim", "slug": "j", "eixo": "Ambiente"}

    def test_geographic_drops_coordinates(self) -> None:
        tidy = tidy_feature(_geo(slug="a", coordinates=[1.0, 2.0]))
        assert "coordinates" not in tidy.properties

    def test_non_geographic_keeps_coordinates(self) -> None:
        tidy = tidy_feature(_non_geo(slug="a", coordinates=[38.71, -9.13]))
        assert tidy.properties["coordinates"] == [38.71, -9.13]

    def test_keeps_media_links(self) -> None:
        tidy = tidy_feature(_non_geo(gx_media_links="https://x/a.jpg"))
        assert tidy.properties == {"gx_media_links": "https://x/a.jpg"}

    def test_idempotent(self) -> None:
        features = [_geo(Name="A", Slug="a", Foo="bar"), _non_geo(SUMARIO="s", coordinates=[1.0, 2.0])]
        once = tidy_features(features)
        twice = tidy_features(once)
        assert once == twice

    def test_geometry_and_flags_untouched(self) -> None:
        feature = Feature(
            properties={"Slug": "a"}, geometry=Point(1, 2), is_geographic=True, source_index=7
        )
        tidy = tidy_feature(feature)
        assert tidy.geometry == Point(1, 2)
        assert tidy.source_index == 7


class TestGrouping:
    """Features are grouped by trimmed slug."""

    def test_groups_by_slug_in_first_seen_order(self) -> None:
        groups = group_proposals(
            [_geo(slug="b"), _geo(slug="a"), _geo(slug="b")],
            [_non_geo(slug="c")],
        )
        assert list(groups) == ["b", "a", "c"]
        assert len(groups["b"].geographic_features) == 2

    def test_slug_trimmed(self) -> None:
        groups = group_proposals([_geo(slug="  praca ")], [_non_geo(slug="praca")])
        assert list(groups) == ["praca"]
        assert len(groups["praca"].features) == 2

    def test_untrimmed_slug_is_not_a_conflict(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO):
            groups = group_proposals([_geo(slug=" praca")], [_non_geo(slug="praca")])
        assert groups["praca"].combined_properties["slug"] == "praca"
        assert "Conflicting value" not in caplog.text

    @pytest.mark.parametrize("slug", [None, "", "   "])
    def test_slugless_features_skipped(self, slug: str | None) -> None:
        properties = {} if slug is None else {"slug": slug}
        groups = group_proposals([_geo(name="sem slug", **properties)], [])
        assert groups == {}

    def test_has_map_location(self) -> None:
        groups = group_proposals(
            [_geo(slug="a")],
            [_non_geo(slug="a"), _non_geo(slug="b")],
        )
        assert groups["a"].has_map_location is True
        assert groups["b"].has_map_location is False

    def test_non_geographic_member_does_not_clear_location(self) -> None:
        groups = group_proposals([_geo(slug="a")], [_non_geo(slug="a"), _non_geo(slug="a")])
        assert groups["a"].has_map_location is True
        assert len(groups["a"].non_geographic_features) == 2


class TestMerge:
    """combined_properties merge rules."""

    def test_descriptions_appended(self) -> None:
        groups = group_proposals(
            [_geo(slug="s", descricao="A"), _geo(slug="s", descricao="B")], []
        )
        assert groups["s"].combined_properties["descricao"] == "A\n\nB"

    def test_sumario_appended_after_geographic(self) -> None:
        groups = group_proposals([_geo(slug="s", sumario="geo")], [_non_geo(slug="s", sumario="sem")])
        assert groups["s"].combined_properties["sumario"] == "geo\n\nsem"

    def test_contained_text_not_reappended(self) -> None:
        groups = group_proposals(
            [
                _geo(slug="s", descricao="Mais árvores na praça"),
                _geo(slug="s", descricao="árvores"),
            ],
            [],
        )
        assert groups["s"].combined_properties["descricao"] == "Mais árvores na praça"

    def test_equal_values_not_duplicated(self) -> None:
        groups = group_proposals([_geo(slug="s", descricao="A"), _geo(slug="s", descricao="A")], [])
        assert groups["s"].combined_properties["descricao"] == "A"

    def test_conflict_keeps_first_and_logs(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO):
            groups = group_proposals(
                [_geo(slug="s", eixo="Mobilidade"), _geo(slug="s", eixo="Ambiente")], []
            )
        assert groups["s"].combined_properties["eixo"] == "Mobilidade"
        assert "Conflicting value for 'eixo'" in caplog.text

    def test_blank_values_never_overwrite(self) -> None:
        groups = group_proposals(
            [_geo(slug="s", proposta="Jardim"), _geo(slug="s", proposta="  ")], []
        )
        assert groups["s"].combined_properties["proposta"] == "Jardim"

    def test_blank_value_is_filled_later(self) -> None:
        groups = group_proposals(
            [_geo(slug="s", proposta="")], [_non_geo(slug="s", proposta="Jardim")]
        )
        assert groups["s"].combined_properties["proposta"] == "Jardim"

    def test_media_links_not_merged_as_property(self) -> None:
        groups = group_proposals([_geo(slug="s", gx_media_links="https://x/a.jpg")], [])
        assert "gx_media_links" not in groups["s"].combined_properties

    def test_coordinates_carried_from_non_geographic(self) -> None:
        groups = group_proposals([], [_non_geo(slug="x", coordinates=[38.71, -9.13])])
        assert groups["x"].combined_properties["coordinates"] == [38.71, -9.13]

    def test_fold_is_deterministic(self) -> None:
        geographic = [
            _geo(slug="s", descricao="A", eixo="Mobilidade", gx_media_links="u1 u2"),
            _geo(slug="s", descricao="B", eixo="Ambiente", gx_media_links="u2,u3"),
        ]
        non_geographic = [_non_geo(slug="s", sumario="S", gx_media_links="u1")]

        first = group_proposals(geographic, non_geographic)
        second = group_proposals(geographic, non_geographic)
        assert first == second

    def test_fold_order_is_geographic_first(self) -> None:
        """Non-geographic descriptions always follow geographic ones."""
        groups = group_proposals(
            [_geo(slug="s", descricao="geo")],
            [_non_geo(slug="s", descricao="sem")],
        )
        assert groups["s"].combined_properties["descricao"] == "geo\n\nsem"

    def test_batched_fold_matches_single_fold(self) -> None:
        """Folding [A, B] then [C] into one group equals folding [A, B, C]."""
        a = _geo(slug="s", name="Praça", descricao="A", gx_media_links="u1 u2")
        b = _geo(slug="s", descricao="B", eixo="Mobilidade", gx_media_links="u2")
        c = _geo(slug="s", sumario="S", proposta="Jardim", gx_media_links="u3,u1")

        batched: dict[str, ProposalGroup] = {}
        for feature in (a, b):
            add_feature(batched, feature)
        add_feature(batched, c)
        single = group_proposals([a, b, c], [])

        assert batched["s"].combined_properties == single["s"].combined_properties
        assert batched["s"].combined_properties == {
            "slug": "s",
            "name": "Praça",
            "descricao": "A\n\nB",
            "eixo": "Mobilidade",
            "sumario": "S",
            "proposta": "Jardim",
        }
        assert batched["s"].all_images == single["s"].all_images == ["u1", "u2", "u3"]


class TestImages:
    """Raw image URL collection."""

    def test_urls_deduplicated_in_encounter_order(self) -> None:
        groups = group_proposals(
            [
                _geo(slug="s", gx_media_links="https://x/a.png"),
                _geo(slug="s", gx_media_links="https://x/a.png https://x/b.jpg"),
            ],
            [_non_geo(slug="s", gx_media_links="https://x/c.jpg,https://x/b.jpg")],
        )
        assert groups["s"].all_images == ["https://x/a.png", "https://x/b.jpg", "https://x/c.jpg"]

    def test_split_media_links(self) -> None:
        assert split_media_links(" a  b,c\n d ") == ["a", "b", "c", "d"]
        assert split_media_links("") == []
        assert split_media_links(None) == []

    def test_dedupe(self) -> None:
        assert dedupe(["a", "b", "a", " ", "c", "b"]) == ["a", "b", "c"]
