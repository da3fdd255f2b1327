"""Tests for eixo colour assignment and the palette model.

Covers:
- Palette loading (file, missing file, invalid file)
- Name matching (exact, accent-insensitive, substring)
- Free palette entries for unmatched eixos, overflow once exhausted
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from propostas_maps.activities.eixo_colours import (
    build_colour_map,
    distinct_eixos,
    eixo_badge_class,
    load_palette,
)
from propostas_maps.models.palette import DEFAULT_PALETTE, EixoColour, EixoPalette
from propostas_maps.models.proposal import ProposalGroup

SMALL_PALETTE = EixoPalette(
    colors=[
        EixoColour(name="Mobilidade", hex="#111111"),
        EixoColour(name="Habitação", hex="#222222"),
    ],
    overflow=EixoColour(hex="#999999"),
)


class TestLoadPalette:
    def test_missing_file_uses_default(self, tmp_path: Path) -> None:
        assert load_palette(tmp_path / "nope.yml") is DEFAULT_PALETTE
        assert load_palette(None) is DEFAULT_PALETTE

    def test_reads_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "eixo_colors.yml"
        path.write_text(
            "colors:\n"
            "  - name: Cultura\n"
            "    hex: '#123456'\n"
            "    css_var: --eixo-color-1\n"
            "overflow:\n"
            "  hex: '#000000'\n",
            encoding="utf-8",
        )
        palette = load_palette(path)
        assert [c.name for c in palette.colors] == ["Cultura"]
        assert palette.overflow.hex == "#000000"

    def test_invalid_file_falls_back(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        path = tmp_path / "eixo_colors.yml"
        path.write_text("colors:\n  - name: Sem hex\n", encoding="utf-8")
        with caplog.at_level(logging.WARNING):
            palette = load_palette(path)
        assert palette is DEFAULT_PALETTE
        assert "Ignoring invalid eixo palette" in caplog.text


class TestBuildColourMap:
    def test_exact_and_accent_insensitive_match(self) -> None:
        mapping = build_colour_map(["habitacao", "Mobilidade"], SMALL_PALETTE)
        assert mapping["habitacao"] == {"hex": "#222222", "className": "2"}
        assert mapping["Mobilidade"] == {"hex": "#111111", "className": "1"}

    def test_substring_match(self) -> None:
        mapping = build_colour_map(["Mobilidade e Transportes"], SMALL_PALETTE)
        assert mapping["Mobilidade e Transportes"]["className"] == "1"

    def test_unmatched_take_free_entries_then_overflow(self) -> None:
        mapping = build_colour_map(["Mobilidade", "Cultura", "Desporto"], SMALL_PALETTE)
        assert mapping["Mobilidade"]["className"] == "1"
        assert mapping["Cultura"] == {"hex": "#222222", "className": "2"}
        assert mapping["Desporto"] == {"hex": "#999999", "className": "overflow"}

    def test_each_palette_entry_used_once(self) -> None:
        mapping = build_colour_map(["Mobilidade", "Mobilidade Suave"], SMALL_PALETTE)
        assert mapping["Mobilidade"]["className"] == "1"
        assert mapping["Mobilidade Suave"]["className"] == "2"

    def test_default_palette(self) -> None:
        mapping = build_colour_map(["Saúde"], DEFAULT_PALETTE)
        assert mapping["Saúde"] == {"hex": "#e377c2", "className": "7"}


class TestHelpers:
    def test_distinct_eixos(self) -> None:
        groups = {
            "a": ProposalGroup(slug="a", combined_properties={"eixo": "Cultura"}),
            "b": ProposalGroup(slug="b", combined_properties={"eixo": "Mobilidade"}),
            "c": ProposalGroup(slug="c", combined_properties={"eixo": "Cultura"}),
            "d": ProposalGroup(slug="d"),
        }
        assert distinct_eixos(groups) == ["Cultura", "Mobilidade"]

    def test_badge_class(self) -> None:
        mapping = {"Cultura": {"hex": "#1", "className": "3"}}
        assert eixo_badge_class("Cultura", mapping) == "badge-eixo-3"
        assert eixo_badge_class("Outro", mapping) == "badge-eixo-overflow"
