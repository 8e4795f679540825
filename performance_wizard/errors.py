"""
Error taxonomy for the Performance Wizard.

Configuration and range errors abort a command and are reported to the
caller as structured failures. Upstream errors (data source or AI agent
failures) are raised only inside adapters; the executor and the agents
absorb them into conversational content so the analysis never goes silent.
"""

from typing import Optional


class WizardError(Exception):
    """Base class for all Performance Wizard errors."""
    status_code = 500


class ConfigurationError(WizardError):
    """No data source or agent registered, or the configuration is unusable."""
    status_code = 500


class UnknownStepError(WizardError):
    """The requested step cannot be resolved for execution."""
    status_code = 400

    def __init__(self, message: str, index: Optional[int] = None):
        super().__init__(message)
        self.index = index


class OutOfRangeError(UnknownStepError):
    """Step index outside ``[0, step_count)``."""
    status_code = 404

    def __init__(self, index: int, step_count: int):
        super().__init__(
            f"Step {index} is out of range (plan has {step_count} steps)",
            index=index,
        )
        self.step_count = step_count


class SessionCompleteError(WizardError):
    """A step was executed after the session reached completion."""
    status_code = 409

    def __init__(self, session_id: str):
        super().__init__(f"Analysis session '{session_id}' is already complete")
        self.session_id = session_id


class UnknownCommandError(WizardError):
    """The command verb is not part of the protocol."""
    status_code = 400


class UpstreamError(WizardError):
    """
    A data source or AI agent failed.

    Never escapes the executor: it is converted into visible response
    content so the conversation history stays coherent.
    """
    status_code = 502

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source
