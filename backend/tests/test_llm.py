"""Tests for the Gemini gateway (network mocked at requests.post)."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
import requests

from conftest import TEST_KEY, gemini_error, gemini_reply
from llm import (
    FACTUAL,
    GOOD_SCORE_FEEDBACK,
    LOW_SCORE_FEEDBACK,
    CredentialMissing,
    GatewayConfig,
    MalformedResponse,
    ParseFailure,
    RemoteError,
)
from schemas import QuizQuestion

ARTICLE = "Solar power adoption grew quickly last year as panel prices fell. " * 10


def _quiz_json(n: int) -> str:
    return json.dumps([
        {"question": f"Question {i}?", "options": ["A", "B", "C", "D"], "answer": i % 4}
        for i in range(n)
    ])


# ---------------------------------------------------------------------------
# Shared request / response handling
# ---------------------------------------------------------------------------

class TestGenerate:

    def test_missing_credential_makes_no_request(self, keyless_gateway) -> None:
        with patch("llm.requests.post") as post:
            with pytest.raises(CredentialMissing):
                keyless_gateway.summarize(ARTICLE, 25)
        post.assert_not_called()

    def test_request_shape(self, gateway) -> None:
        with patch("llm.requests.post", return_value=gemini_reply("ok")) as post:
            gateway.answer_question(ARTICLE, "What grew?")

        url = post.call_args.args[0]
        assert url == "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-pro:generateContent"
        assert post.call_args.kwargs["params"] == {"key": TEST_KEY}
        body = post.call_args.kwargs["json"]
        assert "What grew?" in body["contents"][0]["parts"][0]["text"]
        assert body["generationConfig"] == FACTUAL

    def test_config_changes_endpoint(self, keyed_store) -> None:
        from llm import GeminiGateway

        gw = GeminiGateway(keyed_store, GatewayConfig(base_url="http://localhost:9000/models", model="m1"))
        with patch("llm.requests.post", return_value=gemini_reply("ok")) as post:
            gw.translate("hola", "en")
        assert post.call_args.args[0] == "http://localhost:9000/models/m1:generateContent"

    def test_remote_error_carries_message(self, gateway) -> None:
        with patch("llm.requests.post", return_value=gemini_error(400, "API key not valid")):
            with pytest.raises(RemoteError) as exc:
                gateway.summarize(ARTICLE, 25)
        assert "API key not valid" in str(exc.value)
        assert exc.value.status_code == 400

    def test_remote_error_without_json_uses_reason(self, gateway) -> None:
        with patch("llm.requests.post", return_value=gemini_error(503, reason="Service Unavailable")):
            with pytest.raises(RemoteError, match="Service Unavailable"):
                gateway.summarize(ARTICLE, 25)

    def test_transport_failure_is_remote_error(self, gateway) -> None:
        with patch("llm.requests.post", side_effect=requests.ConnectionError(f"https://x?key={TEST_KEY}")):
            with pytest.raises(RemoteError) as exc:
                gateway.summarize(ARTICLE, 25)
        assert TEST_KEY not in str(exc.value)

    @pytest.mark.parametrize("payload", [
        {},
        {"candidates": []},
        {"candidates": [{"content": {"parts": []}}]},
        {"candidates": [{"content": {"parts": [{"text": "   "}]}}]},
        {"promptFeedback": {"blockReason": "SAFETY"}},
    ])
    def test_malformed_envelope(self, gateway, payload) -> None:
        resp = gemini_reply("")
        resp.json.return_value = payload
        with patch("llm.requests.post", return_value=resp):
            with pytest.raises(MalformedResponse):
                gateway.summarize(ARTICLE, 25)


# ---------------------------------------------------------------------------
# Plain text operations
# ---------------------------------------------------------------------------

class TestTextOperations:

    def test_summarize_trims(self, gateway) -> None:
        with patch("llm.requests.post", return_value=gemini_reply("  A short summary.\n")) as post:
            assert gateway.summarize(ARTICLE, 25) == "A short summary."
        prompt = post.call_args.kwargs["json"]["contents"][0]["parts"][0]["text"]
        assert "approximately 50 words" in prompt

    def test_answer_prompt_restricts_to_context(self, gateway) -> None:
        with patch("llm.requests.post", return_value=gemini_reply("Solar power.")) as post:
            assert gateway.answer_question(ARTICLE, "What grew?") == "Solar power."
        prompt = post.call_args.kwargs["json"]["contents"][0]["parts"][0]["text"]
        assert "not prior knowledge" in prompt
        assert "cannot answer" in prompt

    def test_translate_expands_language_code(self, gateway) -> None:
        with patch("llm.requests.post", return_value=gemini_reply("Hola")) as post:
            assert gateway.translate("Hello", "es") == "Hola"
        prompt = post.call_args.kwargs["json"]["contents"][0]["parts"][0]["text"]
        assert "into Spanish" in prompt

    def test_translate_unknown_code_passes_through(self, gateway) -> None:
        with patch("llm.requests.post", return_value=gemini_reply("Salve")) as post:
            gateway.translate("Hello", "la")
        prompt = post.call_args.kwargs["json"]["contents"][0]["parts"][0]["text"]
        assert "into la" in prompt


# ---------------------------------------------------------------------------
# Parsed operations
# ---------------------------------------------------------------------------

class TestAuthenticity:

    def test_parsed(self, gateway) -> None:
        reply = gemini_reply("Score: 73\n\nExplanation: balanced reporting")
        with patch("llm.requests.post", return_value=reply):
            result = gateway.analyze_authenticity(ARTICLE)
        assert (result.score, result.explanation) == (73, "balanced reporting")

    def test_lenient_default(self, gateway) -> None:
        with patch("llm.requests.post", return_value=gemini_reply("Looks legitimate to me.")):
            result = gateway.analyze_authenticity(ARTICLE)
        assert (result.score, result.explanation) == (0, "No explanation provided")


class TestReferences:

    def test_embedded_array(self, gateway) -> None:
        text = (
            "Here are some resources:\n"
            '[{"title": "Intro video", "url": "https://www.youtube.com/watch?v=1"},'
            ' {"title": "Docs", "url": "https://example.org/docs", "type": "web"}]'
        )
        with patch("llm.requests.post", return_value=gemini_reply(text)) as post:
            result = gateway.generate_references("solar power")
        assert post.call_count == 1
        assert result.error is None
        assert [(r.title, r.type) for r in result.references] == [("Intro video", "youtube"), ("Docs", "web")]

    def test_one_recovery_call(self, gateway) -> None:
        replies = [
            gemini_reply("1. Intro video - youtube.com/watch?v=1"),
            gemini_reply('[{"title": "Intro video", "url": "https://youtube.com/watch?v=1"}]'),
        ]
        with patch("llm.requests.post", side_effect=replies) as post:
            result = gateway.generate_references("solar power")
        assert post.call_count == 2
        repair_prompt = post.call_args.kwargs["json"]["contents"][0]["parts"][0]["text"]
        assert "Convert the following text into valid JSON" in repair_prompt
        assert result.references[0].type == "youtube"

    def test_bracketed_year_before_array(self, gateway) -> None:
        text = 'Top picks for [2024]:\n[{"title": "Docs", "url": "https://example.org/docs", "type": "web"}]'
        with patch("llm.requests.post", return_value=gemini_reply(text)) as post:
            result = gateway.generate_references("solar power")
        assert post.call_count == 1
        assert result.error is None
        assert [(r.title, r.url) for r in result.references] == [("Docs", "https://example.org/docs")]

    def test_no_usable_reference_triggers_recovery(self, gateway) -> None:
        replies = [
            gemini_reply('[{"title": "No link here"}]'),
            gemini_reply('[{"title": "Docs", "url": "https://example.org/docs"}]'),
        ]
        with patch("llm.requests.post", side_effect=replies) as post:
            result = gateway.generate_references("solar power")
        assert post.call_count == 2
        assert [r.url for r in result.references] == ["https://example.org/docs"]

    def test_recovery_remote_error_is_reported_not_raised(self, gateway) -> None:
        replies = [gemini_reply("no json"), gemini_error(500, "boom")]
        with patch("llm.requests.post", side_effect=replies) as post:
            result = gateway.generate_references("solar power")
        assert post.call_count == 2
        assert result.references == []
        assert "boom" in result.error

    def test_recovery_malformed_envelope_is_reported(self, gateway) -> None:
        bad = gemini_reply("")
        bad.json.return_value = {"candidates": []}
        with patch("llm.requests.post", side_effect=[gemini_reply("no json"), bad]):
            result = gateway.generate_references("solar power")
        assert result.references == []
        assert result.error

    def test_recovery_failure_returns_empty_with_error(self, gateway) -> None:
        replies = [gemini_reply("no json here"), gemini_reply("still no json")]
        with patch("llm.requests.post", side_effect=replies) as post:
            result = gateway.generate_references("solar power")
        assert post.call_count == 2
        assert result.references == []
        assert result.error


class TestQuizQuestions:

    def test_filters_and_truncates(self, gateway) -> None:
        items = json.loads(_quiz_json(6))
        items[1]["options"] = ["A", "B", "C"]
        reply = gemini_reply("```json\n" + json.dumps(items) + "\n```")
        with patch("llm.requests.post", return_value=reply):
            questions = gateway.generate_quiz_questions("summary")
        assert len(questions) == 5
        assert "Question 1?" not in [q.question for q in questions]

    def test_footnote_marker_before_array(self, gateway) -> None:
        reply = gemini_reply("Based on section [1] of the summary:\n" + _quiz_json(1))
        with patch("llm.requests.post", return_value=reply):
            questions = gateway.generate_quiz_questions("summary")
        assert [q.question for q in questions] == ["Question 0?"]

    def test_caps_at_five(self, gateway) -> None:
        with patch("llm.requests.post", return_value=gemini_reply(_quiz_json(8))):
            assert len(gateway.generate_quiz_questions("summary")) == 5

    def test_zero_valid_is_parse_failure(self, gateway) -> None:
        bad = json.dumps([{"question": "Q?", "options": ["A", "B"], "answer": 0}])
        with patch("llm.requests.post", return_value=gemini_reply(bad)):
            with pytest.raises(ParseFailure):
                gateway.generate_quiz_questions("summary")

    def test_no_json_is_parse_failure(self, gateway) -> None:
        with patch("llm.requests.post", return_value=gemini_reply("I can't make a quiz.")):
            with pytest.raises(ParseFailure):
                gateway.generate_quiz_questions("summary")


class TestQuizFeedback:

    @staticmethod
    def _questions() -> list[QuizQuestion]:
        return [QuizQuestion(question=f"Q{i}?", options=["A", "B", "C", "D"], answer=0) for i in range(5)]

    def test_model_feedback(self, gateway) -> None:
        with patch("llm.requests.post", return_value=gemini_reply("Nice work on the basics.")) as post:
            result = gateway.generate_quiz_feedback("summary", self._questions(), [0, 1, 0, 2, 0])
        assert result.score == 60
        assert result.feedback == "Nice work on the basics."
        prompt = post.call_args.kwargs["json"]["contents"][0]["parts"][0]["text"]
        assert "scored 60/100" in prompt
        assert "Question 2: Q1?" in prompt

    def test_remote_failure_low_score_fallback(self, gateway) -> None:
        with patch("llm.requests.post", return_value=gemini_error(500, "boom")):
            result = gateway.generate_quiz_feedback("summary", self._questions(), [0, -1, -1, -1, -1])
        assert result.score == 20
        assert result.feedback == LOW_SCORE_FEEDBACK

    def test_remote_failure_high_score_fallback(self, gateway) -> None:
        with patch("llm.requests.post", side_effect=requests.Timeout()):
            result = gateway.generate_quiz_feedback("summary", self._questions(), [0, 0, 0, 0, 1])
        assert result.score == 80
        assert result.feedback == GOOD_SCORE_FEEDBACK

    def test_missing_credential_still_scores(self, keyless_gateway) -> None:
        result = keyless_gateway.generate_quiz_feedback("summary", self._questions(), [0] * 5)
        assert (result.score, result.feedback) == (100, GOOD_SCORE_FEEDBACK)


class TestPing:

    def test_ok(self, gateway) -> None:
        with patch("llm.requests.post", return_value=gemini_reply("OK")):
            assert gateway.ping() == {"ok": True, "model": "gemini-1.5-pro", "content": "OK"}

    def test_without_key(self, keyless_gateway) -> None:
        assert keyless_gateway.ping() == {"ok": False, "error": "API key not set"}
