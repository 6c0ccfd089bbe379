# schemas.py
from typing import Annotated, List, Optional, Literal
from pydantic import BaseModel, HttpUrl, Field, StringConstraints, model_validator

ReferenceType = Literal["youtube", "web"]


class QuizQuestion(BaseModel):
    question: str
    options: List[str] = Field(min_length=4, max_length=4)
    answer: int = Field(ge=0, le=3)


class AuthenticityAssessment(BaseModel):
    score: int = Field(ge=0, le=100)
    explanation: str


class Reference(BaseModel):
    title: str
    url: str
    type: ReferenceType


class ReferenceList(BaseModel):
    references: List[Reference] = []
    error: Optional[str] = None


class QuizFeedback(BaseModel):
    score: int = Field(ge=0, le=100)
    feedback: str


# --- requests -----------------------------------------------------------------

class ApiKeyIn(BaseModel):
    api_key: Annotated[str, StringConstraints(strip_whitespace=True, min_length=10)]


class UrlIn(BaseModel):
    url: HttpUrl


class SummarizeIn(BaseModel):
    text: Optional[str] = None
    url: Optional[HttpUrl] = None
    title: Optional[str] = None
    length_percent: int = Field(default=25, ge=10, le=50)

    @model_validator(mode="after")
    def _text_or_url(self):
        if self.url is None and len((self.text or "").strip()) < 200:
            raise ValueError("Please enter a longer article (minimum 200 characters)")
        return self


class AnswerIn(BaseModel):
    context: str = Field(min_length=1)
    question: str = Field(min_length=5)


class TextIn(BaseModel):
    text: str = Field(min_length=1)


class TranslateIn(BaseModel):
    text: str = Field(min_length=1)
    target_language: str = Field(min_length=2, max_length=16)


class ReferencesIn(BaseModel):
    prompt: str = Field(min_length=1)


class QuizIn(BaseModel):
    summary: str = Field(min_length=1)


class QuizFeedbackIn(BaseModel):
    summary: str
    questions: List[QuizQuestion] = Field(min_length=1)
    selected: List[int]
    article_history_id: Optional[int] = None

    @model_validator(mode="after")
    def _aligned(self):
        if len(self.selected) != len(self.questions):
            raise ValueError("selected must have one entry per question")
        if any(not -1 <= s <= 3 for s in self.selected):
            raise ValueError("selected entries must be in [-1, 3]")
        return self


class SignUpIn(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=6)
    full_name: Optional[str] = None


class SignInIn(BaseModel):
    email: str
    password: str


# --- responses ----------------------------------------------------------------

class SummaryOut(BaseModel):
    summary: str
    original_text: str
    title: str
    article_history_id: Optional[int] = None


class AnswerOut(BaseModel):
    answer: str


class TranslationOut(BaseModel):
    translation: str
    target_language: str


class QuizOut(BaseModel):
    questions: List[QuizQuestion]


class QuizFeedbackOut(QuizFeedback):
    quiz_result_id: Optional[int] = None


class ScrapeOut(BaseModel):
    ok: bool
    title: Optional[str] = None
    text: Optional[str] = None
    error: Optional[str] = None


class SessionOut(BaseModel):
    token: str
    user_id: int
    email: str


class ProfileOut(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None


class QuizResultOut(BaseModel):
    score: int
    suggestion: Optional[str] = None


class HistoryRow(BaseModel):
    id: int
    title: str
    summary: str
    created_at: str
    quiz: Optional[QuizResultOut] = None


class HistoryDetail(HistoryRow):
    original_text: str


class HistoryOut(BaseModel):
    items: list[HistoryRow]


class SampleOut(BaseModel):
    title: str
    text: str
