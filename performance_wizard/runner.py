"""
Analysis Runner

Client loop driving a full analysis through the dispatcher, the way the
terminal front end does: fetch the next action, act on it, advance.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional
import logging

from .dispatcher import CommandDispatcher
from .executor import AGENT_PREFIX, USER_PREFIX
from .models import StepAction

logger = logging.getLogger(__name__)


MAX_STEPS = 25


def render_line(line: str) -> str:
    """Turn a transcript line into labelled terminal text."""
    if line.startswith(USER_PREFIX):
        return "USER\n" + line[len(USER_PREFIX):]
    if line.startswith(AGENT_PREFIX):
        return "AGENT\n" + line[len(AGENT_PREFIX):]
    return line


@dataclass
class AnalysisResult:
    """Outcome of a full analysis run."""
    steps_run: List[int] = field(default_factory=list)
    steps_skipped: List[int] = field(default_factory=list)
    transcript: List[str] = field(default_factory=list)
    complete: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "steps_run": self.steps_run,
            "steps_skipped": self.steps_skipped,
            "transcript": self.transcript,
            "complete": self.complete,
        }


class AnalysisRunner:
    """
    Runs every step of the plan in order.

    Parameters
    ----------
    dispatcher : CommandDispatcher
        Command entry point for the session.
    enabled_sources : iterable of str, optional
        Titles of data source steps to execute. Other data source steps
        are skipped, leaving gaps in the history. All run when None.
    additional_questions : bool
        Ask for follow-up questions on prompt steps.
    echo : callable
        Receives each piece of display text.
    max_steps : int
        Upper bound on the step counter.
    """

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        enabled_sources: Optional[Iterable[str]] = None,
        additional_questions: bool = False,
        echo: Callable[[str], Any] = print,
        max_steps: int = MAX_STEPS,
    ):
        self.dispatcher = dispatcher
        self.enabled_sources = set(enabled_sources) if enabled_sources is not None else None
        self.additional_questions = additional_questions
        self.echo = echo
        self.max_steps = max_steps

    def is_enabled(self, title: str) -> bool:
        return self.enabled_sources is None or title in self.enabled_sources

    def _emit(self, result: AnalysisResult, lines: List[str]) -> None:
        for line in lines:
            result.transcript.append(line)
            self.echo(render_line(line))

    def run(self, fresh: bool = True) -> AnalysisResult:
        """
        Drive the analysis to completion.

        Parameters
        ----------
        fresh : bool
            Clear stored records before starting.
        """
        result = AnalysisResult()
        if fresh:
            self.dispatcher.start()

        step = 0
        while step <= self.max_steps:
            next_step = self.dispatcher.get_next_action(step)
            action = StepAction(next_step["action"])
            self.echo(f"## {next_step['title']}\n{next_step['user_prompt']}")

            if action is StepAction.COMPLETE:
                result.complete = True
                break
            if action is StepAction.RUN_ACTION:
                if not self.is_enabled(next_step["title"]):
                    logger.info(f"Skipping disabled step {step} ({next_step['title']})")
                    result.steps_skipped.append(step)
                else:
                    self._emit(result, self.dispatcher.run_action(step))
                    result.steps_run.append(step)
            elif action is StepAction.PROMPT:
                lines = self.dispatcher.prompt(step, next_step["user_prompt"], self.additional_questions)
                self._emit(result, lines)
                result.steps_run.append(step)
            step += 1

        if not result.complete:
            logger.warning(f"Analysis stopped after {self.max_steps} steps without completing")
        return result
