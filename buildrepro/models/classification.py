"""Reproducibility classification of builds relative to a reference build."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from buildrepro.models.catalog import Build


class Classification(BaseModel):
    """Builds on the reference's job and platform, grouped by how they relate.

    ``same_input_different_output`` is the category worth investigating:
    the same declared inputs produced different bytes.
    """

    model_config = ConfigDict(frozen=True)

    reference: Build
    same_input_same_output: list[Build] = []
    different_input_same_output: list[Build] = []
    same_input_different_output: list[Build] = []
    latest: Build | None = None
    next_different_output: Build | None = None
    previous_different_output: Build | None = None

    @property
    def reproduced_by(self) -> list[Build]:
        return self.same_input_same_output + self.different_input_same_output

    @property
    def reproducible(self) -> bool:
        return not self.same_input_different_output
