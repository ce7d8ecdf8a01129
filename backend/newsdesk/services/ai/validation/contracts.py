"""Full validation result: the four editorial checks keyed by check name."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..editorial.contracts import FeatureResult


class FullValidationResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    fact_check: FeatureResult
    style_analysis: FeatureResult
    duplicate_check: FeatureResult
    sensitivity_check: FeatureResult

    @property
    def all_succeeded(self) -> bool:
        return all(
            r.success for r in (self.fact_check, self.style_analysis, self.duplicate_check, self.sensitivity_check)
        )
