"""
Records shared by the plan, the state store, the executor and the agents.

Steps, step records and conversation history are explicit typed values;
the plan is immutable and the history is rebuilt from the store on every
invocation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, TYPE_CHECKING

from .prompts import ADDITIONAL_QUESTIONS_PROMPT

if TYPE_CHECKING:
    from .data_sources.base import DataSource


class StepAction(Enum):
    """What the client should do with a step."""
    CONTINUE = "continue"
    RUN_ACTION = "run_action"
    PROMPT = "prompt"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Step:
    """
    One entry in the analysis plan.

    Attributes
    ----------
    title : str
        Unique within a plan; used by clients to filter enabled steps.
    user_prompt : str
        Human-readable description. For ``prompt`` steps this is also the
        literal prompt sent to the agent.
    action : StepAction
        How the step is handled.
    data_source : DataSource, optional
        Bound for ``run_action`` steps only.
    """
    title: str
    user_prompt: str
    action: StepAction
    data_source: Optional["DataSource"] = field(default=None, compare=False, repr=False)

    def to_dict(self) -> Dict[str, str]:
        return {
            "title": self.title,
            "user_prompt": self.user_prompt,
            "action": self.action.value,
        }


@dataclass
class StepRecord:
    """Persisted prompt/response pair for one executed step."""
    step_index: int
    prompt_text: str
    response_text: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "prompt_text": self.prompt_text,
            "response_text": self.response_text,
        }

    @classmethod
    def from_dict(cls, step_index: int, payload: Mapping[str, Any]) -> "StepRecord":
        return cls(
            step_index=int(step_index),
            prompt_text=str(payload.get("prompt_text") or ""),
            response_text=str(payload.get("response_text") or ""),
        )


class ConversationHistory:
    """
    Ordered, read-only view of the step records preceding a step.

    Only indices in ``[1, current_step)`` are kept. Step 0 (the
    introduction) carries no data and is never replayed. Missing indices
    are simply absent, so skipped steps leave gaps.
    """

    def __init__(self, records: Mapping[int, StepRecord], current_step: int):
        self.current_step = current_step
        self._records: Dict[int, StepRecord] = {
            index: records[index]
            for index in sorted(records)
            if 1 <= index < current_step
        }

    @classmethod
    def from_records(cls, records: Mapping[int, StepRecord], current_step: int) -> "ConversationHistory":
        return cls(records, current_step)

    @classmethod
    def coerce(cls, history: Any, current_step: int) -> "ConversationHistory":
        """
        Build a history from a ``ConversationHistory`` or a raw mapping.

        Raw mappings are ``{index: {"prompt_text", "response_text"}}`` as
        exchanged at the agent boundary; ``StepRecord`` values are accepted
        too.
        """
        if history is None:
            return cls({}, current_step)
        if isinstance(history, ConversationHistory):
            return cls(history._records, current_step)
        records: Dict[int, StepRecord] = {}
        for key, value in history.items():
            index = int(key)
            if isinstance(value, StepRecord):
                records[index] = value
            else:
                records[index] = StepRecord.from_dict(index, value)
        return cls(records, current_step)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[StepRecord]:
        return iter(self._records.values())

    def __contains__(self, index: int) -> bool:
        return index in self._records

    def indices(self) -> List[int]:
        return list(self._records)

    def get(self, index: int) -> Optional[StepRecord]:
        return self._records.get(index)

    def turns(self) -> List[Tuple[str, str]]:
        """
        Alternating ``(role, text)`` turns in increasing step order.

        Each record contributes its user turn followed by its assistant
        turn. A record missing either text is left out as a whole so the
        roles keep alternating.
        """
        turns: List[Tuple[str, str]] = []
        for record in self._records.values():
            if not record.prompt_text or not record.response_text:
                continue
            turns.append(("user", record.prompt_text))
            turns.append(("assistant", record.response_text))
        return turns

    def to_dict(self) -> Dict[int, Dict[str, str]]:
        return {index: record.to_dict() for index, record in self._records.items()}


@dataclass
class AgentInvocation:
    """Transient bundle handed to an agent for one call. Never persisted."""
    fragments: List[str]
    current_step: int
    history: ConversationHistory
    additional_questions: bool = False

    def outgoing_fragments(self) -> List[str]:
        fragments = list(self.fragments)
        if self.additional_questions:
            fragments.append(ADDITIONAL_QUESTIONS_PROMPT)
        return fragments

    def joined(self) -> str:
        return "\n".join(self.outgoing_fragments())


@dataclass
class OperationReport:
    """
    Result of a save-style operation.

    Failures are reported here instead of raised so the caller can decide
    whether they matter.
    """
    success: bool
    operation: str
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "operation": self.operation,
            "warnings": self.warnings,
            "errors": self.errors,
            "metadata": self.metadata,
        }


@dataclass
class CommandResponse:
    """Outcome of one protocol command."""
    status: int
    body: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"status": self.status, "body": self.body}
        if self.error is not None:
            result["error"] = self.error
        return result
