# llm.py  - talks to the Gemini generateContent REST endpoint with requests
import os
import logging
from dataclasses import dataclass
from typing import List, Optional

import requests
from dotenv import load_dotenv

from credentials import CredentialStore
from schemas import (
    AuthenticityAssessment,
    QuizFeedback,
    QuizQuestion,
    Reference,
    ReferenceList,
)
from utils import (
    build_quiz_transcript,
    extract_json_array,
    normalize_quiz,
    normalize_references,
    parse_authenticity,
    score_quiz,
    target_word_count,
)

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MODEL = "gemini-1.5-pro"

# Lower temperature for factual tasks, higher for creative ones
FACTUAL = {"temperature": 0.2, "topK": 40, "topP": 0.95, "maxOutputTokens": 1024}
QUIZ = {"temperature": 0.4, "topK": 40, "topP": 0.95, "maxOutputTokens": 2048}
CREATIVE = {"temperature": 0.7, "topK": 40, "topP": 0.95, "maxOutputTokens": 1024}
FEEDBACK = {"temperature": 0.7, "topK": 40, "topP": 0.95, "maxOutputTokens": 512}

GOOD_SCORE_FEEDBACK = "Great job! You understood the article well."
LOW_SCORE_FEEDBACK = "Review the article and try again for a better score!"

LANGUAGES = {
    "ar": "Arabic",
    "bn": "Bengali",
    "de": "German",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "hi": "Hindi",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "pt": "Portuguese",
    "ru": "Russian",
    "ta": "Tamil",
    "te": "Telugu",
    "zh": "Chinese",
}

PROMPT_DIR = os.path.join(os.path.dirname(__file__), "prompts")


def _load_prompt(name: str) -> str:
    with open(os.path.join(PROMPT_DIR, f"{name}.md"), "r", encoding="utf-8") as f:
        return f.read()


PROMPTS = {
    name: _load_prompt(name)
    for name in (
        "summarize", "answer", "authenticity", "translate",
        "references", "repair_json", "quiz", "quiz_feedback",
    )
}


class LLMError(Exception):
    pass


class CredentialMissing(LLMError):
    pass


class RemoteError(LLMError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(LLMError):
    pass


class ParseFailure(LLMError):
    pass


@dataclass(frozen=True)
class GatewayConfig:
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    timeout: float = 60.0

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        return cls(
            base_url=(os.getenv("GEMINI_BASE_URL") or DEFAULT_BASE_URL).strip().rstrip("/"),
            model=(os.getenv("GEMINI_MODEL") or DEFAULT_MODEL).strip(),
            timeout=float(os.getenv("GEMINI_TIMEOUT") or 60),
        )


def _parse_references(text: str) -> List[dict]:
    refs = normalize_references(extract_json_array(text))
    if not refs:
        raise ValueError("No usable references in model response")
    return refs


def fallback_feedback(score: int) -> str:
    return GOOD_SCORE_FEEDBACK if score >= 80 else LOW_SCORE_FEEDBACK


class GeminiGateway:
    """
    Builds prompts, calls the generative endpoint and parses the replies.
    Stateless apart from the credential store it reads the API key from.
    """

    def __init__(self, credentials: CredentialStore, config: Optional[GatewayConfig] = None):
        self.credentials = credentials
        self.config = config or GatewayConfig()

    @property
    def endpoint(self) -> str:
        return f"{self.config.base_url}/{self.config.model}:generateContent"

    def _generate(self, prompt: str, generation: dict) -> str:
        api_key = self.credentials.get()
        if not api_key:
            raise CredentialMissing("API key not set")

        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": dict(generation),
        }
        logger.info("Calling %s (temperature=%s)", self.config.model, generation["temperature"])
        try:
            resp = requests.post(
                self.endpoint,
                params={"key": api_key},
                json=body,
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            # the exception text can echo the URL, which carries the key
            logger.error("Gemini request failed: %s", type(e).__name__)
            raise RemoteError(f"Could not reach Gemini API ({type(e).__name__})")

        if not resp.ok:
            try:
                message = resp.json()["error"]["message"]
            except (ValueError, KeyError, TypeError):
                message = resp.reason or f"HTTP {resp.status_code}"
            logger.error("Gemini API error %s: %s", resp.status_code, message)
            raise RemoteError(f"Error from Gemini API: {message}", status_code=resp.status_code)

        try:
            text = resp.json()["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError):
            text = None
        if not isinstance(text, str) or not text.strip():
            logger.error("Unexpected response format from %s", self.config.model)
            raise MalformedResponse("Received unexpected response format from Gemini API")
        return text

    # --- plain text operations ----------------------------------------------

    def summarize(self, text: str, length_percent: int) -> str:
        prompt = PROMPTS["summarize"].format(
            target_words=target_word_count(text, length_percent),
            text=text,
        )
        return self._generate(prompt, FACTUAL).strip()

    def answer_question(self, context: str, question: str) -> str:
        prompt = PROMPTS["answer"].format(context=context, question=question)
        return self._generate(prompt, FACTUAL).strip()

    def translate(self, text: str, target_language: str) -> str:
        code = target_language.strip().lower()
        prompt = PROMPTS["translate"].format(language=LANGUAGES.get(code, target_language), text=text)
        return self._generate(prompt, FACTUAL).strip()

    # --- parsed operations ---------------------------------------------------

    def analyze_authenticity(self, text: str) -> AuthenticityAssessment:
        raw = self._generate(PROMPTS["authenticity"].format(text=text), FACTUAL)
        return AuthenticityAssessment(**parse_authenticity(raw))

    def generate_references(self, prompt: str) -> ReferenceList:
        raw = self._generate(PROMPTS["references"].format(prompt=prompt), CREATIVE)
        try:
            refs = _parse_references(raw)
        except ValueError:
            logger.info("Reference list was not valid JSON, asking the model to repair it")
            # one repair attempt; its failure is reported in the result, not raised
            try:
                repaired = self._generate(PROMPTS["repair_json"].format(text=raw), FACTUAL)
                refs = _parse_references(repaired)
            except (LLMError, ValueError) as e:
                logger.warning("Reference repair failed: %s", e)
                return ReferenceList(references=[], error=f"Could not parse references: {e}")
        return ReferenceList(references=[Reference(**r) for r in refs])

    def generate_quiz_questions(self, summary: str) -> List[QuizQuestion]:
        raw = self._generate(PROMPTS["quiz"].format(summary=summary), QUIZ)
        try:
            items = extract_json_array(raw)
        except ValueError as e:
            raise ParseFailure(f"Could not parse quiz questions: {e}")
        quiz = normalize_quiz(items)
        if not quiz:
            raise ParseFailure("Model returned no valid quiz questions")
        if len(quiz) < len(items):
            logger.info("Kept %d of %d quiz questions", len(quiz), len(items))
        return [QuizQuestion(**q) for q in quiz]

    def generate_quiz_feedback(
        self, summary: str, questions: List[QuizQuestion], selected: List[int]
    ) -> QuizFeedback:
        """
        Scores the attempt and asks the model for tailored feedback.
        Never raises: any gateway failure falls back to a fixed sentence.
        """
        plain = [q.model_dump() for q in questions]
        score = score_quiz(plain, selected)
        prompt = PROMPTS["quiz_feedback"].format(
            score=score,
            summary=summary,
            transcript=build_quiz_transcript(plain, selected),
        )
        try:
            feedback = self._generate(prompt, FEEDBACK).strip()
        except LLMError as e:
            logger.warning("Quiz feedback fell back to a fixed message: %s", e)
            feedback = fallback_feedback(score)
        return QuizFeedback(score=score, feedback=feedback)

    # --- smoke test ----------------------------------------------------------

    def ping(self) -> dict:
        """
        Returns {"ok": True, "model": <model>, "content": "..."} on success,
                or {"ok": False, "error": "..."} on failure.
        """
        try:
            text = self._generate("Reply with OK", FACTUAL).strip()
        except LLMError as e:
            return {"ok": False, "error": str(e)}
        return {"ok": True, "model": self.config.model, "content": text[:200]}
