# main.py
import logging
import os
from typing import Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from db import get_session, init_db
import models, schemas
from auth import AuthError, bearer_token, sign_in, sign_out, sign_up, user_for_token
from credentials import DEFAULT_PATH, CredentialStore
from llm import (
    CredentialMissing,
    GatewayConfig,
    GeminiGateway,
    LLMError,
    MalformedResponse,
    ParseFailure,
)
from samples import random_sample
from scraper import ScrapeError, scrape_article

load_dotenv()

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# App & CORS
# -----------------------------------------------------------------------------
app = FastAPI(title="Article Whisperer – AI article summarizer")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create tables at startup
init_db()

# One gateway for the process; the key lives in the credential store
credential_store = CredentialStore(os.getenv("CREDENTIAL_PATH") or DEFAULT_PATH)
if not credential_store.get() and os.getenv("GOOGLE_API_KEY", "").strip():
    credential_store.set(os.getenv("GOOGLE_API_KEY").strip())
app.state.gateway = GeminiGateway(credential_store, GatewayConfig.from_env())


def get_gateway(request: Request) -> GeminiGateway:
    return request.app.state.gateway


def current_user_id(authorization: Optional[str] = Header(None)) -> Optional[int]:
    token = bearer_token(authorization)
    if not token:
        return None
    with get_session() as db:
        user = user_for_token(db, token)
        if user is None:
            raise HTTPException(status_code=401, detail="Session expired, please sign in again")
        return user.id


def require_user_id(user_id: Optional[int] = Depends(current_user_id)) -> int:
    if user_id is None:
        raise HTTPException(status_code=401, detail="User not authenticated")
    return user_id


def llm_http_error(e: LLMError) -> HTTPException:
    if isinstance(e, CredentialMissing):
        status, kind = 401, "credential_missing"
    elif isinstance(e, MalformedResponse):
        status, kind = 502, "malformed_response"
    elif isinstance(e, ParseFailure):
        status, kind = 502, "parse_failure"
    else:
        status, kind = 502, "remote_error"
    return HTTPException(status_code=status, detail={"error": kind, "message": str(e)})


def _ensure_credential(gateway: GeminiGateway) -> None:
    if not gateway.credentials.get():
        raise llm_http_error(CredentialMissing("API key not set"))


def _default_title(text: str) -> str:
    first_line = text.strip().split("\n", 1)[0]
    return first_line[:80].rstrip() + ("…" if len(first_line) > 80 else "")


def _quiz_out(row: models.ArticleHistory) -> Optional[dict]:
    if not row.quiz_results:
        return None
    q = row.quiz_results[0]
    return {"score": q.score, "suggestion": q.suggestion}

# -----------------------------------------------------------------------------
# Health
# -----------------------------------------------------------------------------
@app.get("/api/health")
def health():
    return {"status": "ok"}

# -----------------------------------------------------------------------------
# LLM smoke test (quick check that the key and model work)
# -----------------------------------------------------------------------------
@app.get("/api/llm-test")
def llm_test(gateway: GeminiGateway = Depends(get_gateway)):
    return gateway.ping()

# -----------------------------------------------------------------------------
# API key
# -----------------------------------------------------------------------------
@app.get("/api/credential")
def credential_status(gateway: GeminiGateway = Depends(get_gateway)):
    return {"configured": bool(gateway.credentials.get())}

@app.put("/api/credential")
def save_credential(payload: schemas.ApiKeyIn, gateway: GeminiGateway = Depends(get_gateway)):
    gateway.credentials.set(payload.api_key)
    return {"configured": True}

@app.delete("/api/credential")
def forget_credential(gateway: GeminiGateway = Depends(get_gateway)):
    gateway.credentials.clear()
    return {"configured": False}

# -----------------------------------------------------------------------------
# Scraper (fill the input box from a URL)
# -----------------------------------------------------------------------------
@app.post("/api/scrape", response_model=schemas.ScrapeOut)
def scrape_only(payload: schemas.UrlIn):
    try:
        article = scrape_article(str(payload.url))
        return {"ok": True, "title": article.title, "text": article.text}
    except ScrapeError as e:
        return {"ok": False, "error": str(e)}

@app.get("/api/samples/random", response_model=schemas.SampleOut)
def sample_article():
    return random_sample()

# -----------------------------------------------------------------------------
# Summarize (scrape if needed + LLM + store history when signed in)
# -----------------------------------------------------------------------------
@app.post("/api/summarize", response_model=schemas.SummaryOut)
def summarize(
    payload: schemas.SummarizeIn,
    gateway: GeminiGateway = Depends(get_gateway),
    user_id: Optional[int] = Depends(current_user_id),
):
    _ensure_credential(gateway)

    text, title = (payload.text or "").strip(), payload.title
    if payload.url is not None and len(text) < 200:
        try:
            article = scrape_article(str(payload.url))
        except ScrapeError as e:
            raise HTTPException(status_code=400, detail=str(e))
        text, title = article.text, title or article.title

    try:
        summary = gateway.summarize(text, payload.length_percent)
    except LLMError as e:
        raise llm_http_error(e)

    title = (title or "").strip() or _default_title(text)
    history_id = None
    if user_id is not None:
        with get_session() as db:
            row = models.ArticleHistory(user_id=user_id, title=title, original_text=text, summary=summary)
            db.add(row)
            db.commit()
            db.refresh(row)
            history_id = row.id
        logger.info("Saved article %s to history of user %s", history_id, user_id)

    return {"summary": summary, "original_text": text, "title": title, "article_history_id": history_id}

# -----------------------------------------------------------------------------
# Follow-up operations on a summarized article
# -----------------------------------------------------------------------------
@app.post("/api/answer", response_model=schemas.AnswerOut)
def answer(payload: schemas.AnswerIn, gateway: GeminiGateway = Depends(get_gateway)):
    try:
        return {"answer": gateway.answer_question(payload.context, payload.question)}
    except LLMError as e:
        raise llm_http_error(e)

@app.post("/api/authenticity", response_model=schemas.AuthenticityAssessment)
def authenticity(payload: schemas.TextIn, gateway: GeminiGateway = Depends(get_gateway)):
    try:
        return gateway.analyze_authenticity(payload.text)
    except LLMError as e:
        raise llm_http_error(e)

@app.post("/api/translate", response_model=schemas.TranslationOut)
def translate(payload: schemas.TranslateIn, gateway: GeminiGateway = Depends(get_gateway)):
    try:
        translation = gateway.translate(payload.text, payload.target_language)
    except LLMError as e:
        raise llm_http_error(e)
    return {"translation": translation, "target_language": payload.target_language}

@app.post("/api/references", response_model=schemas.ReferenceList)
def references(payload: schemas.ReferencesIn, gateway: GeminiGateway = Depends(get_gateway)):
    try:
        return gateway.generate_references(payload.prompt)
    except LLMError as e:
        raise llm_http_error(e)

# -----------------------------------------------------------------------------
# Quiz
# -----------------------------------------------------------------------------
@app.post("/api/quiz", response_model=schemas.QuizOut)
def quiz(payload: schemas.QuizIn, gateway: GeminiGateway = Depends(get_gateway)):
    try:
        return {"questions": gateway.generate_quiz_questions(payload.summary)}
    except LLMError as e:
        raise llm_http_error(e)

@app.post("/api/quiz/feedback", response_model=schemas.QuizFeedbackOut)
def quiz_feedback(
    payload: schemas.QuizFeedbackIn,
    gateway: GeminiGateway = Depends(get_gateway),
    user_id: Optional[int] = Depends(current_user_id),
):
    result = gateway.generate_quiz_feedback(payload.summary, payload.questions, payload.selected)
    out = {"score": result.score, "feedback": result.feedback, "quiz_result_id": None}

    if user_id is not None and payload.article_history_id is not None:
        with get_session() as db:
            article = (
                db.query(models.ArticleHistory)
                .filter(models.ArticleHistory.id == payload.article_history_id,
                        models.ArticleHistory.user_id == user_id)
                .first()
            )
            if not article:
                raise HTTPException(status_code=404, detail="Article not found")
            row = models.QuizResult(
                article_history_id=article.id,
                user_id=user_id,
                score=result.score,
                suggestion=result.feedback,
            )
            db.add(row)
            db.commit()
            out["quiz_result_id"] = row.id
    return out

# -----------------------------------------------------------------------------
# Auth
# -----------------------------------------------------------------------------
@app.post("/api/auth/signup", response_model=schemas.SessionOut)
def signup(payload: schemas.SignUpIn):
    with get_session() as db:
        try:
            session = sign_up(db, payload.email, payload.password, payload.full_name)
        except AuthError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"token": session.token, "user_id": session.user_id, "email": session.user.email}

@app.post("/api/auth/signin", response_model=schemas.SessionOut)
def signin(payload: schemas.SignInIn):
    with get_session() as db:
        try:
            session = sign_in(db, payload.email, payload.password)
        except AuthError as e:
            raise HTTPException(status_code=401, detail=str(e))
        return {"token": session.token, "user_id": session.user_id, "email": session.user.email}

@app.post("/api/auth/signout")
def signout(authorization: Optional[str] = Header(None)):
    token = bearer_token(authorization)
    if token:
        with get_session() as db:
            sign_out(db, token)
    return {"ok": True}

# -----------------------------------------------------------------------------
# Profile & history
# -----------------------------------------------------------------------------
@app.get("/api/profile", response_model=schemas.ProfileOut)
def profile(user_id: int = Depends(require_user_id)):
    with get_session() as db:
        user = db.query(models.Profile).filter(models.Profile.id == user_id).first()
        return {"id": user.id, "email": user.email, "full_name": user.full_name}

@app.get("/api/history", response_model=schemas.HistoryOut)
def list_history(user_id: int = Depends(require_user_id)):
    with get_session() as db:
        rows = (
            db.query(models.ArticleHistory)
            .filter(models.ArticleHistory.user_id == user_id)
            .order_by(models.ArticleHistory.created_at.desc(), models.ArticleHistory.id.desc())
            .all()
        )
        return {
            "items": [
                {
                    "id": r.id,
                    "title": r.title,
                    "summary": r.summary,
                    "created_at": r.created_at.isoformat(),
                    "quiz": _quiz_out(r),
                }
                for r in rows
            ]
        }

@app.get("/api/history/{article_id}", response_model=schemas.HistoryDetail)
def get_history(article_id: int, user_id: int = Depends(require_user_id)):
    with get_session() as db:
        r = (
            db.query(models.ArticleHistory)
            .filter(models.ArticleHistory.id == article_id, models.ArticleHistory.user_id == user_id)
            .first()
        )
        if not r:
            raise HTTPException(status_code=404, detail="Article not found")
        return {
            "id": r.id,
            "title": r.title,
            "summary": r.summary,
            "original_text": r.original_text,
            "created_at": r.created_at.isoformat(),
            "quiz": _quiz_out(r),
        }
