"""
Rendered artifact model.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class GeneratedFile(BaseModel):
    """One rendered file, held in memory until the whole set is rendered."""

    model_config = ConfigDict(frozen=True)

    path: str       # relative to the generation directory
    content: str
    template: str   # source template, named in GenerationError
