"""
Step Executor

Runs one step of the analysis: collects data, drives the agent with the
replayed history, persists the prompt/response pair and returns a
two-line transcript for display.

Errors become conversational content. A failing data source degrades to
empty data and a failing agent call is persisted as the response, so the
history stays consistent for later steps.
"""

import logging
from typing import List, Tuple

from .agents.base import AIAgent
from .data_sources.base import DataSource, is_error_marker
from .errors import UnknownStepError
from .models import StepAction, StepRecord
from .plan import AnalysisPlan
from .prompts import (
    DATA_POINT_PROMPT,
    DATA_POINT_SUMMARY_PROMPT,
    data_fragment,
    data_fragment_for_user,
)
from .store import StateStore

logger = logging.getLogger(__name__)


USER_PREFIX = ">Q: "
AGENT_PREFIX = ">A: "

DEBUG_PLACEHOLDER = "{debug}"


def format_transcript(for_user: List[str], response: str) -> List[str]:
    """Two display lines: the user's turn and the agent's turn."""
    return [USER_PREFIX + "\n".join(for_user), AGENT_PREFIX + response]


class StepExecutor:
    """
    Executes steps of an analysis plan for one session.

    Parameters
    ----------
    plan : AnalysisPlan
        The step plan.
    agent : AIAgent
        Agent receiving the prompts.
    store : StateStore
        Where step records and snapshots are kept.
    session_id : str
        Session key in the store.
    debug_mode : bool
        Skip data collection and agent calls, answering ``{debug}``.
    """

    def __init__(
        self,
        plan: AnalysisPlan,
        agent: AIAgent,
        store: StateStore,
        session_id: str,
        debug_mode: bool = False,
    ):
        self.plan = plan
        self.agent = agent
        self.store = store
        self.session_id = session_id
        self.debug_mode = debug_mode

    def collect(self, source: DataSource) -> str:
        """Fetch a source's payload, degrading any failure to ``""``."""
        if self.debug_mode:
            return DEBUG_PLACEHOLDER
        try:
            data = source.get_data()
        except Exception:
            logger.exception(f"Data source '{source.get_name()}' raised; continuing without its data")
            return ""
        if is_error_marker(data):
            logger.warning(f"Data source '{source.get_name()}' returned no data: {data}")
            return ""
        return data or ""

    def build_fragments(self, source: DataSource, data: str) -> Tuple[List[str], List[str]]:
        """
        Build the agent fragments and their display twin.

        Returns
        -------
        tuple
            ``(fragments, for_user)``; identical except the data fragment,
            where the display copy carries ``{DATA}`` instead of the payload.
        """
        fragments = [DATA_POINT_PROMPT]
        for text in (source.get_prompt(), source.get_description()):
            if text:
                fragments.append(text)
        for_user = list(fragments)

        if data:
            shape = source.get_data_shape()
            strategy = source.get_analysis_strategy()
            fragments.append(data_fragment(data, shape, strategy))
            for_user.append(data_fragment_for_user(shape, strategy))

        fragments.append(DATA_POINT_SUMMARY_PROMPT)
        for_user.append(DATA_POINT_SUMMARY_PROMPT)
        return fragments, for_user

    def run(self, step_index: int) -> List[str]:
        """
        Execute a ``run_action`` step.

        Parameters
        ----------
        step_index : int
            Index of the step in the plan.

        Returns
        -------
        list of str
            ``[">Q: ...", ">A: ..."]``.

        Raises
        ------
        UnknownStepError
            If the index is out of range or the step has no data source.
        """
        step = self.plan.get_step(step_index)
        if step.action is not StepAction.RUN_ACTION or step.data_source is None:
            raise UnknownStepError(
                f"Step {step_index} ('{step.title}') is a '{step.action.value}' step, not a data source step",
                index=step_index,
            )

        source = step.data_source
        logger.info(f"Running step {step_index} ({step.title}) for session '{self.session_id}'")
        data = self.collect(source)
        fragments, for_user = self.build_fragments(source, data)

        response = self._ask(fragments, step_index, additional_questions=False)
        self._persist(step_index, fragments, response)
        if data:
            self.store.save_snapshot(self.session_id, step_index, data)
        return format_transcript(for_user, response)

    def run_prompt(self, step_index: int, prompt: str, additional_questions: bool = False) -> List[str]:
        """
        Send a single prompt at ``step_index``.

        Used for the summarize step and for follow-up questions, which may
        use indices past the end of the plan.

        Raises
        ------
        UnknownStepError
            If ``step_index`` is below 1, since step 0 is never persisted,
            or if ``prompt`` is blank.
        """
        if step_index < 1:
            raise UnknownStepError(f"Prompts cannot be sent at step {step_index}", index=step_index)
        if not (prompt or "").strip():
            raise UnknownStepError(f"Empty prompt at step {step_index}", index=step_index)

        logger.info(f"Sending prompt at step {step_index} for session '{self.session_id}'")
        fragments = [prompt]
        response = self._ask(fragments, step_index, additional_questions)
        self._persist(step_index, fragments, response)
        return format_transcript(fragments, response)

    def _ask(self, fragments: List[str], step_index: int, additional_questions: bool) -> str:
        if self.debug_mode:
            return DEBUG_PLACEHOLDER
        with self.store.lock(self.session_id):
            history = self.store.load_history(self.session_id, step_index)
        return self.agent.send_prompts(fragments, step_index, history, additional_questions)

    def _persist(self, step_index: int, fragments: List[str], response: str) -> None:
        record = StepRecord(step_index=step_index, prompt_text="\n".join(fragments), response_text=response)
        report = self.store.save_record(self.session_id, record)
        if not report.success:
            logger.error(f"Step {step_index} record was not saved: {'; '.join(report.errors)}")
