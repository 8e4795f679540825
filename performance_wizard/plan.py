"""
Analysis Plan

The ordered, immutable list of steps derived from the registered data
sources:

    0            Introduction        continue
    1 .. n       one per source      run_action
    n + 1        Summarize Results   prompt
    n + 2        Wrap Up             complete
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .data_sources.base import DataSource
from .errors import ConfigurationError, OutOfRangeError
from .models import Step, StepAction
from .prompts import (
    INTRODUCTION_PROMPT,
    INTRODUCTION_TITLE,
    SUMMARIZE_RESULTS_PROMPT,
    SUMMARIZE_RESULTS_TITLE,
    WRAP_UP_PROMPT,
    WRAP_UP_TITLE,
)

logger = logging.getLogger(__name__)


class AnalysisPlan:
    """
    Step plan for one analysis.

    Parameters
    ----------
    data_sources : sequence of DataSource
        Sources in registration order. At least one is required.

    Raises
    ------
    ConfigurationError
        If no data source is given or two steps share a title.
    """

    def __init__(self, data_sources: Sequence[DataSource]):
        sources = list(data_sources)
        if not sources:
            raise ConfigurationError("At least one data source must be registered")

        steps: List[Step] = [Step(INTRODUCTION_TITLE, INTRODUCTION_PROMPT, StepAction.CONTINUE)]
        for source in sources:
            steps.append(Step(
                title=source.get_name(),
                user_prompt=source.get_user_prompt(),
                action=StepAction.RUN_ACTION,
                data_source=source,
            ))
        steps.append(Step(SUMMARIZE_RESULTS_TITLE, SUMMARIZE_RESULTS_PROMPT, StepAction.PROMPT))
        steps.append(Step(WRAP_UP_TITLE, WRAP_UP_PROMPT, StepAction.COMPLETE))

        index_by_title: Dict[str, int] = {}
        for index, step in enumerate(steps):
            if not step.title:
                raise ConfigurationError(f"Step {index} has an empty title")
            if step.title in index_by_title:
                raise ConfigurationError(f"Duplicate step title '{step.title}'")
            index_by_title[step.title] = index

        self._steps: Tuple[Step, ...] = tuple(steps)
        self._index_by_title = index_by_title
        logger.debug(f"Built analysis plan with {len(self._steps)} steps: {self.titles()}")

    @property
    def steps(self) -> Tuple[Step, ...]:
        return self._steps

    def step_count(self) -> int:
        return len(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def get_step(self, index: int) -> Step:
        """
        Return the step at ``index``.

        Raises
        ------
        OutOfRangeError
            If ``index`` is outside ``[0, step_count)``. Negative indices
            are not wrapped.
        """
        if not 0 <= index < len(self._steps):
            raise OutOfRangeError(index, len(self._steps))
        return self._steps[index]

    def titles(self) -> List[str]:
        return [step.title for step in self._steps]

    def index_of(self, title: str) -> Optional[int]:
        return self._index_by_title.get(title)

    def data_source_steps(self) -> List[Tuple[int, Step]]:
        """``(index, step)`` pairs for every ``run_action`` step."""
        return [
            (index, step) for index, step in enumerate(self._steps)
            if step.action is StepAction.RUN_ACTION
        ]

    def find_data_source(self, name: str) -> Optional[Tuple[int, DataSource]]:
        """Locate a data source step by name, returning ``(index, source)``."""
        for index, step in self.data_source_steps():
            if step.title == name and step.data_source is not None:
                return index, step.data_source
        return None
