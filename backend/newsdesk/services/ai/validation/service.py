"""Full article validation: four editorial checks fanned out concurrently."""

from __future__ import annotations

import asyncio
import logging

from ..editorial.service import FeatureInvoker
from .contracts import FullValidationResult

logger = logging.getLogger(__name__)


class ValidationOrchestrator:
    def __init__(self, invoker: FeatureInvoker) -> None:
        self._invoker = invoker

    async def run_full(
        self,
        content: str,
        title: str | None = None,
        subtitle: str | None = None,
    ) -> FullValidationResult:
        """Run fact, style, duplicate and sensitivity checks and wait for all of them.

        ``FeatureInvoker.invoke`` never raises, so one failing check cannot
        cancel or hide the others.
        """
        fact, style, duplicate, sensitivity = await asyncio.gather(
            self._invoker.check_facts(content, title=title, subtitle=subtitle),
            self._invoker.unify_style(content),
            self._invoker.check_duplicates(content),
            self._invoker.check_sensitivity(content),
        )
        result = FullValidationResult(
            fact_check=fact,
            style_analysis=style,
            duplicate_check=duplicate,
            sensitivity_check=sensitivity,
        )
        if not result.all_succeeded:
            failed = [r.feature for r in (fact, style, duplicate, sensitivity) if not r.success]
            logger.warning("Full validation finished with failed checks: %s", ", ".join(failed))
        return result
