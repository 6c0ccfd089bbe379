# workflow.py  - client-side model of the summarize -> quiz wizard
#
# Every begin_*/start_* call hands out a generation token. A result that
# arrives with an older token than the latest one is dropped, so a slow
# response can never overwrite the outcome of a newer request.
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from llm import CredentialMissing, GeminiGateway, LLMError
from schemas import QuizFeedback, QuizQuestion

logger = logging.getLogger(__name__)


class WizardState(str, Enum):
    AWAITING_CREDENTIAL = "awaiting_credential"
    COMPOSING = "composing"
    SUMMARIZING = "summarizing"
    SUMMARIZED = "summarized"
    TAKING_QUIZ = "taking_quiz"
    QUIZ_SCORED = "quiz_scored"


class InvalidTransition(Exception):
    pass


@dataclass
class ArticleWizard:
    gateway: GeminiGateway
    state: WizardState = WizardState.COMPOSING
    original_text: str = ""
    summary: Optional[str] = None
    questions: List[QuizQuestion] = field(default_factory=list)
    feedback: Optional[QuizFeedback] = None
    error: Optional[str] = None
    generation: int = 0

    def __post_init__(self) -> None:
        if not self.gateway.credentials.get():
            self.state = WizardState.AWAITING_CREDENTIAL

    def _require(self, *states: WizardState) -> None:
        if self.state not in states:
            raise InvalidTransition(f"Cannot do that while {self.state.value}")

    def _is_current(self, token: int) -> bool:
        if token != self.generation:
            logger.info("Dropping stale result for generation %d (current %d)", token, self.generation)
            return False
        return True

    def save_credential(self, api_key: str) -> None:
        self.gateway.credentials.set(api_key)
        if self.state == WizardState.AWAITING_CREDENTIAL:
            self.state = WizardState.COMPOSING

    # --- summarizing ---------------------------------------------------------

    def begin_summarize(self, text: str) -> int:
        self._require(WizardState.COMPOSING, WizardState.SUMMARIZING)
        self.generation += 1
        self.state = WizardState.SUMMARIZING
        self.original_text = text
        self.error = None
        return self.generation

    def complete_summarize(self, token: int, summary: str) -> bool:
        if not self._is_current(token):
            return False
        self.summary = summary
        self.state = WizardState.SUMMARIZED
        return True

    def fail_summarize(self, token: int, error: str, missing_credential: bool = False) -> bool:
        if not self._is_current(token):
            return False
        self.error = error
        self.state = WizardState.AWAITING_CREDENTIAL if missing_credential else WizardState.COMPOSING
        return True

    def summarize(self, text: str, length_percent: int = 25) -> bool:
        """Runs one summarization through the gateway. Returns True on success."""
        token = self.begin_summarize(text)
        try:
            summary = self.gateway.summarize(text, length_percent)
        except LLMError as e:
            self.fail_summarize(token, str(e), isinstance(e, CredentialMissing))
            return False
        return self.complete_summarize(token, summary)

    # --- quiz ----------------------------------------------------------------

    def start_quiz(self) -> bool:
        """Fetches quiz questions for the current summary. Returns True on success."""
        self._require(WizardState.SUMMARIZED, WizardState.QUIZ_SCORED)
        self.generation += 1
        token = self.generation
        self.error = None
        try:
            questions = self.gateway.generate_quiz_questions(self.summary or "")
        except LLMError as e:
            if self._is_current(token):
                self.error = str(e)
                if isinstance(e, CredentialMissing):
                    self.state = WizardState.AWAITING_CREDENTIAL
            return False
        if not self._is_current(token):
            return False
        self.questions = questions
        self.feedback = None
        self.state = WizardState.TAKING_QUIZ
        return True

    def submit_quiz(self, selected: List[int]) -> QuizFeedback:
        self._require(WizardState.TAKING_QUIZ)
        token = self.generation
        feedback = self.gateway.generate_quiz_feedback(self.summary or "", self.questions, selected)
        if self._is_current(token):
            self.feedback = feedback
            self.state = WizardState.QUIZ_SCORED
        return feedback

    def reset(self) -> None:
        """'Summarize another article': back to composing, prior results dropped."""
        self.generation += 1
        self.summary = None
        self.questions = []
        self.feedback = None
        self.error = None
        self.original_text = ""
        self.state = (
            WizardState.COMPOSING if self.gateway.credentials.get()
            else WizardState.AWAITING_CREDENTIAL
        )
