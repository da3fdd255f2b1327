"""Shared pytest fixtures for the propostas map pipeline test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.kml_builders import folder, kml_document, placemark, point


@pytest.fixture()
def campaign_kml() -> str:
    """A geographic "Propostas" layer plus a "Propostas s/ Local" layer.

    - ``praca``: two geographic placemarks sharing one image URL
    - ``longe``: a point outside WGS 84 range (rejected by validation)
    - a geographic placemark without slug
    - ``x``: one non-geographic placemark with reference coordinates
    """
    return kml_document(
        folder(
            "Propostas",
            placemark(
                "Praça nova",
                description="slug: praca<br>descricao: A<br>eixo: Mobilidade",
                data={"gx_media_links": "https://img.example.com/a.png"},
                geometry=point(-9.14, 38.72),
            ),
            placemark(
                "Praça nova (norte)",
                description="slug: praca<br>descricao: B<br>eixo: Ambiente",
                data={
                    "gx_media_links": "https://img.example.com/a.png https://img.example.com/b.jpg"
                },
                geometry=point(-9.141, 38.721),
            ),
            placemark(
                "Fora do mapa",
                description="slug: longe<br>descricao: C",
                geometry=point(200, 45),
            ),
            placemark(
                "Sem slug",
                description="descricao: D<br>",
                geometry=point(-9.15, 38.73),
            ),
        ),
        folder(
            "Propostas s/ Local",
            placemark(
                "Bibliotecas",
                description="Coordenadas: 38.71,-9.13<br>slug: x<br>sumario: Mais livros",
            ),
        ),
    )


@pytest.fixture()
def images_dir(tmp_path: Path) -> Path:
    path = tmp_path / "assets" / "data" / "images"
    path.mkdir(parents=True)
    return path
