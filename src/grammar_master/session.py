"""
Quiz Session State Machine

Owns the lifecycle of one quiz attempt:

    IDLE -> LOADING -> ACTIVE -> FINISHED
               \\-> ERROR

Every change goes through transition(), a pure function from
(state, action) to a new immutable SessionState. Recording an answer and
moving past it happen in one transition, and the score is computed exactly
once, from the complete question and answer lists, inside the transition
into FINISHED.

QuizSession wraps the reducer for UIs: it awaits the question source,
ignores actions the current state forbids, and exposes a read-only snapshot.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Sequence

from .questions.schema import Question
from .questions.source import QuestionSource, QuestionGenerationError

logger = logging.getLogger(__name__)

EMPTY_BATCH_MESSAGE = "No questions were generated. Please try again."


class SessionStatus(str, Enum):
    """Status of a quiz session."""
    IDLE = "idle"
    LOADING = "loading"
    ACTIVE = "active"
    FINISHED = "finished"
    ERROR = "error"


class InvalidTransition(Exception):
    """An action was attempted in a state that forbids it."""
    pass


@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot of a quiz session."""
    status: SessionStatus = SessionStatus.IDLE
    questions: tuple[Question, ...] = ()
    current_question_index: int = 0
    user_answers: tuple[int, ...] = ()
    score: int = 0
    error_message: Optional[str] = None
    pending_selection: Optional[int] = None

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Optional[Question]:
        """Question being shown, or None outside ACTIVE."""
        if self.status != SessionStatus.ACTIVE:
            return None
        return self.questions[self.current_question_index]

    @property
    def is_last_question(self) -> bool:
        return self.current_question_index == len(self.questions) - 1

    @property
    def answered_current(self) -> bool:
        """Whether an answer is recorded for the current position."""
        return len(self.user_answers) == self.current_question_index + 1

    @property
    def progress(self) -> float:
        """Fraction of the quiz reached, for progress bars (0.0 - 1.0)."""
        if not self.questions:
            return 0.0
        if self.status == SessionStatus.FINISHED:
            return 1.0
        return (self.current_question_index + 1) / len(self.questions)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "questions": [q.to_dict() for q in self.questions],
            "current_question_index": self.current_question_index,
            "user_answers": list(self.user_answers),
            "score": self.score,
            "error_message": self.error_message,
            "pending_selection": self.pending_selection,
        }


# =============================================================================
# ACTIONS
# =============================================================================

@dataclass(frozen=True)
class StartRequested:
    """User asked for a new quiz."""


@dataclass(frozen=True)
class QuestionsLoaded:
    """The question source produced a batch."""
    questions: tuple[Question, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class LoadFailed:
    """The question source failed."""
    message: str


@dataclass(frozen=True)
class SelectOption:
    """An option is highlighted but not yet submitted."""
    option_index: int


@dataclass(frozen=True)
class SubmitAnswer:
    """Record an answer for the current question."""
    option_index: int


@dataclass(frozen=True)
class Advance:
    """Move past the current (answered) question."""


@dataclass(frozen=True)
class Confirm:
    """Submit the pending selection and advance, as one step."""


@dataclass(frozen=True)
class Restart:
    """Discard everything and return to IDLE."""


# =============================================================================
# REDUCER
# =============================================================================

def compute_score(questions: Sequence[Question], answers: Sequence[int]) -> int:
    """Count positions where the recorded answer matches the correct option."""
    return sum(
        1 for question, answer in zip(questions, answers)
        if question.is_correct(answer)
    )


def _require(state: SessionState, action, *allowed: SessionStatus) -> None:
    if state.status not in allowed:
        raise InvalidTransition(
            f"{type(action).__name__} not allowed while {state.status.value}"
        )


def _require_option(state: SessionState, option_index: int) -> None:
    question = state.questions[state.current_question_index]
    if not question.has_option(option_index):
        raise InvalidTransition(f"option {option_index!r} out of range")


def _submit(state: SessionState, option_index: int) -> SessionState:
    _require_option(state, option_index)
    # Write at the current position; a second submit overwrites it
    answers = state.user_answers[:state.current_question_index] + (option_index,)
    return replace(state, user_answers=answers, pending_selection=None)


def _advance(state: SessionState) -> SessionState:
    if not state.answered_current:
        raise InvalidTransition("current question has no recorded answer")

    next_index = state.current_question_index + 1
    if next_index < len(state.questions):
        return replace(state, current_question_index=next_index, pending_selection=None)

    return replace(
        state,
        status=SessionStatus.FINISHED,
        pending_selection=None,
        score=compute_score(state.questions, state.user_answers),
    )


def transition(state: SessionState, action) -> SessionState:
    """
    Apply one action to a session state.

    Args:
        state: Current state (never mutated)
        action: One of the action dataclasses above

    Returns:
        The new state

    Raises:
        InvalidTransition: If the action is not allowed in the current state
    """
    if isinstance(action, StartRequested):
        _require(state, action, SessionStatus.IDLE, SessionStatus.ERROR)
        return SessionState(status=SessionStatus.LOADING)

    if isinstance(action, QuestionsLoaded):
        _require(state, action, SessionStatus.LOADING)
        if not action.questions:
            return SessionState(status=SessionStatus.ERROR, error_message=EMPTY_BATCH_MESSAGE)
        return SessionState(status=SessionStatus.ACTIVE, questions=tuple(action.questions))

    if isinstance(action, LoadFailed):
        _require(state, action, SessionStatus.LOADING)
        return SessionState(status=SessionStatus.ERROR, error_message=action.message)

    if isinstance(action, SelectOption):
        _require(state, action, SessionStatus.ACTIVE)
        _require_option(state, action.option_index)
        return replace(state, pending_selection=action.option_index)

    if isinstance(action, SubmitAnswer):
        _require(state, action, SessionStatus.ACTIVE)
        return _submit(state, action.option_index)

    if isinstance(action, Advance):
        _require(state, action, SessionStatus.ACTIVE)
        return _advance(state)

    if isinstance(action, Confirm):
        _require(state, action, SessionStatus.ACTIVE)
        if state.pending_selection is None:
            raise InvalidTransition("no option selected")
        return _advance(_submit(state, state.pending_selection))

    if isinstance(action, Restart):
        # LOADING is excluded: the outstanding fetch would land in a reset session
        _require(state, action, SessionStatus.ACTIVE, SessionStatus.FINISHED, SessionStatus.ERROR)
        return SessionState()

    raise TypeError(f"Unknown action: {action!r}")


# =============================================================================
# SESSION FACADE
# =============================================================================

class QuizSession:
    """
    One quiz attempt, driven by UI actions.

    Actions the current state forbids are ignored and leave the state
    unchanged. Every method returns the resulting snapshot.
    """

    def __init__(self, source: QuestionSource):
        """
        Initialize session.

        Args:
            source: Question source used by start()
        """
        self.source = source
        self._state = SessionState()
        self.history: list[str] = []

    @property
    def state(self) -> SessionState:
        """Read-only snapshot for rendering."""
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    def dispatch(self, action) -> SessionState:
        """Apply an action, ignoring it if the current state forbids it."""
        previous = self._state.status
        try:
            self._state = transition(self._state, action)
        except InvalidTransition as e:
            logger.debug(f"Ignored {type(action).__name__}: {e}")
            return self._state

        self.history.append(type(action).__name__)
        logger.debug(f"Session: {previous.value} --[{type(action).__name__}]--> {self._state.status.value}")
        return self._state

    async def start(self) -> SessionState:
        """
        Start a new quiz: LOADING, then ACTIVE or ERROR.

        Ignored while a fetch is already outstanding, or while a quiz is
        ACTIVE or FINISHED (restart first). Any failure of the source,
        expected or not, ends in ERROR with the configured failure
        message; a cancelled start() also leaves ERROR behind before the
        cancellation propagates.
        """
        if self._state.status == SessionStatus.LOADING:
            logger.debug("Start ignored: questions are already loading")
            return self._state

        # LOADING is entered before awaiting, so a second start() is a no-op
        before = self._state
        if self.dispatch(StartRequested()) is before:
            return self._state

        try:
            questions = tuple(await self.source.fetch())
        except QuestionGenerationError as e:
            return self.dispatch(LoadFailed(message=str(e)))
        except Exception:
            logger.exception("Question source raised an unexpected error")
            return self.dispatch(LoadFailed(message=self.source.quiz_config.failure_message))
        else:
            return self.dispatch(QuestionsLoaded(questions=questions))
        finally:
            # Cancelled mid-fetch: LOADING never outlives start()
            if self._state.status == SessionStatus.LOADING:
                self.dispatch(LoadFailed(message=self.source.quiz_config.failure_message))

    def select_option(self, option_index: int) -> SessionState:
        return self.dispatch(SelectOption(option_index))

    def submit_answer(self, option_index: int) -> SessionState:
        return self.dispatch(SubmitAnswer(option_index))

    def advance(self) -> SessionState:
        return self.dispatch(Advance())

    def confirm(self) -> SessionState:
        """Submit the highlighted option and move on (or finish)."""
        return self.dispatch(Confirm())

    def answer(self, option_index: int) -> SessionState:
        """Select and confirm an option in one call."""
        before = self._state
        if self.select_option(option_index) is before:
            return self._state
        return self.confirm()

    def restart(self) -> SessionState:
        return self.dispatch(Restart())
