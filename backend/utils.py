# utils.py
import json
import math
import re
from typing import List, Optional

MIN_SUMMARY_WORDS = 50
MAX_QUIZ_QUESTIONS = 5
NO_EXPLANATION = "No explanation provided"

# substrings that mark a reference URL as a video link
VIDEO_HOSTS = ("youtube.com", "youtu.be")

SCORE_RE = re.compile(r"score\**\s*:\s*\**\s*(\d{1,3})", re.I)
EXPLANATION_RE = re.compile(r"explanation\**\s*:\s*\**\s*(.+)", re.I | re.S)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def target_word_count(text: str, length_percent: int) -> int:
    words = len(text.split())
    return max(_round_half_up(words * length_percent / 100), MIN_SUMMARY_WORDS)


def strip_code_fence(content: str) -> str:
    # Some models wrap JSON in ``` blocks; strip if present
    content = content.strip()
    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else ""
        if content.rstrip().endswith("```"):
            content = content.rstrip()[:-3]
    return content.strip()


def _matching_bracket(text: str, start: int) -> Optional[int]:
    """Index of the ']' closing the '[' at `start`, skipping brackets inside JSON strings."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return i
    return None


def _is_object_array(data) -> bool:
    return isinstance(data, list) and all(isinstance(x, dict) for x in data)


def extract_json_array(text: str) -> list:
    """
    Pulls a JSON array of objects out of free model text.
    Tries the whole (fence-stripped) text first, then every '['..']' span in order,
    skipping spans such as "[2024]" or "[1]" that are not arrays of objects.
    Raises ValueError when no span qualifies.
    """
    content = strip_code_fence(text or "")
    try:
        data = json.loads(content)
        if _is_object_array(data):
            return data
    except ValueError:
        pass

    start = content.find("[")
    while start != -1:
        end = _matching_bracket(content, start)
        if end is not None:
            try:
                data = json.loads(content[start:end + 1])
                if data and _is_object_array(data):
                    return data
            except ValueError:
                pass
        start = content.find("[", start + 1)
    raise ValueError("No JSON array of objects found in model response")


def parse_authenticity(text: str) -> dict:
    score_match = SCORE_RE.search(text or "")
    explanation_match = EXPLANATION_RE.search(text or "")
    score = int(score_match.group(1)) if score_match else 0
    explanation = explanation_match.group(1).strip() if explanation_match else ""
    return {
        "score": min(max(score, 0), 100),
        "explanation": explanation or NO_EXPLANATION,
    }


def reference_kind(url: str) -> str:
    lowered = (url or "").lower()
    return "youtube" if any(host in lowered for host in VIDEO_HOSTS) else "web"


def normalize_references(raw: list) -> List[dict]:
    refs = []
    for r in raw:
        if not isinstance(r, dict):
            continue
        url = str(r.get("url") or r.get("link") or "").strip()
        if not url:
            continue
        kind = str(r.get("type") or "").strip().lower()
        refs.append({
            "title": str(r.get("title") or url).strip(),
            "url": url,
            "type": kind if kind in {"youtube", "web"} else reference_kind(url),
        })
    return refs


def _answer_index(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def normalize_quiz(raw: list, limit: int = MAX_QUIZ_QUESTIONS) -> List[dict]:
    quiz = []
    for q in raw:
        if not isinstance(q, dict):
            continue
        question = str(q.get("question") or q.get("prompt") or "").strip()
        options = q.get("options")
        answer = _answer_index(q.get("answer", q.get("correctAnswer")))
        if not question or not isinstance(options, list) or len(options) != 4:
            continue
        if answer is None or not 0 <= answer < 4:
            continue
        quiz.append({
            "question": question,
            "options": [str(o).strip() for o in options],
            "answer": answer,
        })
        if len(quiz) == limit:
            break
    return quiz


def score_quiz(questions: List[dict], selected: List[int]) -> int:
    if not questions:
        return 0
    correct = sum(
        1 for i, q in enumerate(questions)
        if i < len(selected) and selected[i] == q["answer"]
    )
    return _round_half_up(correct / len(questions) * 100)


def build_quiz_transcript(questions: List[dict], selected: List[int]) -> str:
    lines = []
    for i, q in enumerate(questions):
        choice = selected[i] if i < len(selected) else -1
        picked = q["options"][choice] if 0 <= choice < len(q["options"]) else "Not answered"
        lines.append(
            f"Question {i + 1}: {q['question']}\n"
            f"User's answer: {picked}\n"
            f"Correct answer: {q['options'][q['answer']]}\n"
            f"Result: {'Correct' if choice == q['answer'] else 'Incorrect'}"
        )
    return "\n\n".join(lines)
