"""Pydantic models for the eixo colour palette.

The palette file is the same YAML the site templates read
(``_data/eixo_colors.yml``)::

    colors:
      - name: Mobilidade
        hex: "#1f77b4"
        css_var: --eixo-color-1
    overflow:
      hex: "#7f7f7f"
      css_var: --eixo-color-overflow
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field


class EixoColour(BaseModel):
    """One palette entry."""

    name: str = ""
    hex: str
    css_var: str = ""


class EixoPalette(BaseModel):
    """Ordered palette plus the colour used once it is exhausted."""

    colors: list[EixoColour] = Field(default_factory=list)
    overflow: EixoColour = Field(
        default_factory=lambda: EixoColour(hex="#7f7f7f", css_var="--eixo-color-overflow")
    )

    @classmethod
    def from_yaml(cls, path: Path | str) -> EixoPalette:
        """Load a palette from a YAML file.

        Raises:
            OSError: If the file cannot be read.
            yaml.YAMLError: If the file is not valid YAML.
            pydantic.ValidationError: If the structure does not match.
        """
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        return cls.model_validate(data)


DEFAULT_PALETTE = EixoPalette(
    colors=[
        EixoColour(name="Mobilidade", hex="#1f77b4", css_var="--eixo-color-1"),
        EixoColour(name="Habitação", hex="#ff7f0e", css_var="--eixo-color-2"),
        EixoColour(name="Ambiente", hex="#2ca02c", css_var="--eixo-color-3"),
        EixoColour(name="Espaço Público", hex="#d62728", css_var="--eixo-color-4"),
        EixoColour(name="Cultura", hex="#9467bd", css_var="--eixo-color-5"),
        EixoColour(name="Educação", hex="#8c564b", css_var="--eixo-color-6"),
        EixoColour(name="Saúde", hex="#e377c2", css_var="--eixo-color-7"),
        EixoColour(name="Participação", hex="#bcbd22", css_var="--eixo-color-8"),
    ],
)
"""Palette used when no palette file is present."""
