"""
Command Dispatcher

Maps protocol commands onto the plan, the executor and the comparison
operation. Session state moves ``NotStarted -> Running(step) -> Complete``
and is derived from the store; the caller owns the step counter.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from .agents.base import AIAgent
from .comparison import compare
from .errors import SessionCompleteError, UnknownCommandError, UnknownStepError, WizardError
from .executor import StepExecutor
from .models import CommandResponse, StepAction
from .plan import AnalysisPlan
from .prompts import COMPARE_COMMAND
from .store import StateStore

logger = logging.getLogger(__name__)


COMMANDS = ("get_next_action", "run_action", "prompt", "start")


def normalize_command(command: Any) -> str:
    """Accept both ``run_action`` and the legacy ``_run_action_`` form."""
    name = str(command or "").strip().strip("_").lower()
    if name not in COMMANDS:
        raise UnknownCommandError(f"Unknown command '{command}'. Supported: {', '.join(COMMANDS)}")
    return name


def _coerce_step(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        raise UnknownStepError(f"Step must be an integer, got {value!r}")


def _coerce_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


class CommandDispatcher:
    """
    Entry point for the command protocol of one session.

    Parameters
    ----------
    plan : AnalysisPlan
        The step plan.
    executor : StepExecutor
        Executes data source and prompt steps.
    store : StateStore
        Session state.
    session_id : str
        Session key.
    compare_source : str
        Data source re-run by the ``compare`` prompt.
    agent_factory : callable, optional
        Builds an agent from a request's ``agent`` field, allowing a
        per-request provider switch.
    """

    def __init__(
        self,
        plan: AnalysisPlan,
        executor: StepExecutor,
        store: StateStore,
        session_id: str,
        compare_source: str = "Lighthouse",
        agent_factory: Optional[Callable[[str], AIAgent]] = None,
    ):
        self.plan = plan
        self.executor = executor
        self.store = store
        self.session_id = session_id
        self.compare_source = compare_source
        self.agent_factory = agent_factory

    @property
    def agent(self) -> AIAgent:
        return self.executor.agent

    def is_complete(self) -> bool:
        return self.store.is_complete(self.session_id)

    def start(self) -> str:
        """Begin a fresh analysis, forgetting any stored records."""
        report = self.store.clear(self.session_id)
        if not report.success:
            logger.error(f"Could not clear session '{self.session_id}': {'; '.join(report.errors)}")
        return ""

    def get_next_action(self, step: int) -> Dict[str, str]:
        """
        Describe the step at ``step`` without executing it.

        Fetching the ``complete`` step moves the session to Complete.
        """
        plan_step = self.plan.get_step(step)
        if plan_step.action is StepAction.COMPLETE and not self.is_complete():
            self.store.mark_complete(self.session_id)
            logger.info(f"Session '{self.session_id}' reached completion at step {step}")
        return plan_step.to_dict()

    def run_action(self, step: int) -> List[str]:
        """Execute the data source step at ``step``; the caller increments."""
        with self.store.lock(self.session_id):
            if self.is_complete():
                raise SessionCompleteError(self.session_id)
            return self.executor.run(step)

    def prompt(self, step: int, text: str, additional_questions: bool = False) -> List[str]:
        """Send ``text`` at ``step``, or run the comparison for ``compare``."""
        if (text or "").strip() == COMPARE_COMMAND:
            return compare(
                self.plan, self.store, self.session_id, self.compare_source,
                debug_mode=self.executor.debug_mode,
            )
        with self.store.lock(self.session_id):
            return self.executor.run_prompt(step, text, additional_questions)

    def _switch_agent(self, name: Any) -> None:
        if not name or self.agent_factory is None:
            return
        try:
            agent = self.agent_factory(str(name))
        except WizardError as e:
            logger.warning(f"Ignoring agent '{name}': {e}")
            return
        if agent.get_name() != self.agent.get_name():
            agent.set_system_instructions(self.agent.get_system_instructions())
            self.executor.agent = agent

    def handle_command(self, request: Mapping[str, Any]) -> CommandResponse:
        """
        Execute one protocol request.

        Parameters
        ----------
        request : mapping
            ``command`` plus ``step``, ``prompt``, ``additional_questions``
            and ``agent`` as applicable.

        Returns
        -------
        CommandResponse
            Status 200 with the command's body, or the error's status code
            with its message.
        """
        try:
            command = normalize_command(request.get("command"))
            step = _coerce_step(request.get("step"))
            additional_questions = _coerce_flag(request.get("additional_questions"))
            self._switch_agent(request.get("agent"))

            logger.info(
                f"Command: {command} Step: {step} Additional Questions: {additional_questions} "
                f"Agent: {self.agent.get_name()}"
            )

            if command == "start":
                body: Any = self.start()
            elif command == "get_next_action":
                body = self.get_next_action(step)
            elif command == "run_action":
                body = self.run_action(step)
            else:
                body = self.prompt(step, str(request.get("prompt") or ""), additional_questions)
        except WizardError as e:
            logger.warning(f"Command failed with status {e.status_code}: {e}")
            return CommandResponse(status=e.status_code, error=str(e))

        return CommandResponse(status=200, body=body)
