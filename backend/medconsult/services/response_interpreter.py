# backend/medconsult/services/response_interpreter.py
#
# Turns raw model text into typed results. Every entry point returns a
# well-formed value: a structured decode is tried first, then an ordered list
# of fallbacks, and the Interpretation records which one produced the value.

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from medconsult.models import AnalysisResult, DiagnosisCandidate, FollowUpMCQ
from .symptom_patterns import (
    GENERIC_QUESTIONS,
    demo_analysis,
    demo_follow_up_mcqs,
    demo_follow_up_questions,
    mean_confidence,
    placeholder_analysis,
)

logger = logging.getLogger(__name__)

MODEL_JSON = "model_json"
TEXT_HEURISTIC = "text_heuristic"
SYMPTOM_PATTERN = "symptom_pattern"
PLACEHOLDER = "placeholder"

MAX_TEXT_QUESTIONS = 5

_THINK_BLOCK_RE = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)
_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([\]}])")
_NUMBERING_RE = re.compile(r"^\s*(?:\d+\s*[\.\):]?|[-*•])\s*")
_MCQ_HEADER_RE = re.compile(r"^\s*(?:\*\*)?Question\s+\d+\s*[:.]?\s*(?:\*\*)?\s*(.+)$", re.IGNORECASE)
_MCQ_OPTION_RE = re.compile(r"^\s*(?:[1-9]|[A-Da-d])[\.\)]\s*(.+)$")


@dataclass
class Interpretation:
    value: Any
    strategy: str

    @property
    def degraded(self) -> bool:
        return self.strategy != MODEL_JSON


# ---------- JSON extraction ----------

def clean_model_text(text: str) -> str:
    """Drop reasoning blocks and markdown fences."""
    text = _THINK_BLOCK_RE.sub("", text)
    if "</think>" in text:
        text = text.rsplit("</think>", 1)[1]
    return _FENCE_RE.sub("", text).strip()


def fix_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def _balanced_span(text: str, start: int) -> Optional[str]:
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
        elif ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def extract_json(text: Optional[str], openers: str = "{[") -> Any:
    """
    Decode the first balanced JSON value in `text` whose opening bracket is
    one of `openers`. Returns None when nothing decodes.
    """
    if not text:
        return None
    cleaned = clean_model_text(text)
    for start, ch in enumerate(cleaned):
        if ch not in openers:
            continue
        candidate = _balanced_span(cleaned, start)
        if candidate is None:
            continue
        for attempt in (candidate, fix_trailing_commas(candidate)):
            try:
                return json.loads(attempt, strict=False)
            except ValueError:
                continue
    return None


# ---------- coercion helpers ----------

def clamp_confidence(value: Any, default: int = 50) -> int:
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return max(0, min(100, int(round(number))))


def _str_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def _either(data: dict, camel: str, snake: str) -> Any:
    """Models answer in camelCase or snake_case; take whichever is present."""
    value = data.get(camel)
    return data.get(snake) if value is None else value


def _first_list(data: Any, *keys: str) -> Optional[list]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in keys:
            if isinstance(data.get(key), list):
                return data[key]
    return None


def _candidate_from_json(item: Any) -> Optional[DiagnosisCandidate]:
    if not isinstance(item, dict):
        return None
    name = item.get("name") or item.get("diagnosis")
    if not isinstance(name, str) or not name.strip():
        return None
    try:
        return DiagnosisCandidate(
            name=name.strip(),
            description=str(item.get("description") or ""),
            confidence=clamp_confidence(item.get("confidence", item.get("probability"))),
            category=str(item.get("category") or "General"),
            red_flags=_str_list(_either(item, "redFlags", "red_flags")),
            recommended_tests=_str_list(_either(item, "recommendedTests", "recommended_tests")),
            severity=str(item.get("severity") or "medium"),
            literature_support=str(_either(item, "literatureSupport", "literature_support") or "moderate"),
            additional_testing_needed=_str_list(_either(item, "additionalTestingNeeded", "additional_testing_needed")),
        )
    except ValidationError as e:
        logger.debug(f"Skipping diagnosis entry: {e}")
        return None


def _mcq_from_json(item: Any, index: int) -> Optional[FollowUpMCQ]:
    if not isinstance(item, dict):
        return None
    question = item.get("question")
    raw_options = item.get("options")
    if not isinstance(question, str) or not question.strip() or not isinstance(raw_options, list):
        return None

    options = []
    for i, option in enumerate(raw_options):
        if isinstance(option, dict):
            label = option.get("label") or option.get("text")
            if not label:
                continue
            options.append({
                "id": str(option.get("id") or f"opt_{i + 1}"),
                "label": str(label),
                "value": str(option.get("value") or label),
            })
        elif isinstance(option, str) and option.strip():
            options.append({"id": f"opt_{i + 1}", "label": option.strip(), "value": option.strip()})

    try:
        return FollowUpMCQ(
            id=str(item.get("id") or f"mcq_{index + 1}"),
            question=question.strip(),
            options=options,
            category=str(item.get("category") or "general"),
        )
    except ValidationError as e:
        logger.debug(f"Skipping MCQ entry: {e}")
        return None


def _mcqs_from_json(data: Any) -> List[FollowUpMCQ]:
    if isinstance(data, dict) and "question" in data and "options" in data:
        data = [data]
    items = _first_list(data, "followUpMCQs", "follow_up_mcqs", "mcqs", "questions") or []
    mcqs = [_mcq_from_json(item, i) for i, item in enumerate(items)]
    return [mcq for mcq in mcqs if mcq is not None]


def _mcqs_from_text(text: str) -> List[FollowUpMCQ]:
    """Parse the 'Question N: ...?' block format with numbered or lettered options."""
    blocks = []
    for line in clean_model_text(text).splitlines():
        header = _MCQ_HEADER_RE.match(line)
        if header:
            blocks.append({"question": header.group(1).strip().strip("*").strip(), "options": []})
            continue
        option = _MCQ_OPTION_RE.match(line)
        if option and blocks:
            blocks[-1]["options"].append(option.group(1).strip())
    return _mcqs_from_json([block for block in blocks if len(block["options"]) >= 2])


def _questions_from_text(text: str) -> List[str]:
    questions = []
    for line in clean_model_text(text).splitlines():
        if "?" not in line:
            continue
        question = _NUMBERING_RE.sub("", line.strip()).strip().strip('",')
        if question:
            questions.append(question)
    return questions[:MAX_TEXT_QUESTIONS]


# ---------- public API ----------

def interpret_questions(text: Optional[str], symptoms: str = "", mode: str = "patient") -> Interpretation:
    data = extract_json(text, "[{")
    items = _first_list(data, "questions", "followUpQuestions", "follow_up_questions") or []
    questions = []
    for item in items:
        if isinstance(item, dict):
            item = item.get("question")
        if isinstance(item, str) and item.strip():
            questions.append(item.strip())
    if questions:
        return Interpretation(questions, MODEL_JSON)

    questions = _questions_from_text(text or "")
    if questions:
        return Interpretation(questions, TEXT_HEURISTIC)

    if symptoms.strip():
        return Interpretation(demo_follow_up_questions(symptoms, mode), SYMPTOM_PATTERN)
    return Interpretation(list(GENERIC_QUESTIONS), PLACEHOLDER)


def interpret_mcqs(text: Optional[str], symptoms: str = "") -> Interpretation:
    mcqs = _mcqs_from_json(extract_json(text, "[{"))
    if mcqs:
        return Interpretation(mcqs, MODEL_JSON)

    mcqs = _mcqs_from_text(text or "")
    if mcqs:
        return Interpretation(mcqs, TEXT_HEURISTIC)

    strategy = SYMPTOM_PATTERN if symptoms.strip() else PLACEHOLDER
    return Interpretation(demo_follow_up_mcqs(symptoms), strategy)


def interpret_analysis(text: Optional[str], symptoms: str = "", mode: str = "patient") -> Interpretation:
    data = extract_json(text, "{[")
    items = _first_list(data, "diagnoses", "differentialDiagnoses", "differential_diagnoses") or []
    candidates = [c for c in (_candidate_from_json(item) for item in items) if c is not None]

    if candidates:
        fields = data if isinstance(data, dict) else {}
        result = AnalysisResult(
            diagnoses=candidates,
            follow_up_questions=_str_list(_either(fields, "followUpQuestions", "follow_up_questions")),
            follow_up_mcqs=_mcqs_from_json(_either(fields, "followUpMCQs", "follow_up_mcqs")) or None,
            red_flags=_str_list(_either(fields, "redFlags", "red_flags")),
            recommended_tests=_str_list(_either(fields, "recommendedTests", "recommended_tests")),
            overall_confidence=mean_confidence([c.confidence for c in candidates]),
        )
        return Interpretation(result, MODEL_JSON)

    if symptoms.strip():
        logger.info("Model analysis could not be parsed, using symptom pattern analysis")
        return Interpretation(demo_analysis(symptoms, mode), SYMPTOM_PATTERN)
    return Interpretation(placeholder_analysis(), PLACEHOLDER)


def parse_questions(text: Optional[str], symptoms: str = "", mode: str = "patient") -> List[str]:
    return interpret_questions(text, symptoms, mode).value


def parse_mcqs(text: Optional[str], symptoms: str = "") -> List[FollowUpMCQ]:
    return interpret_mcqs(text, symptoms).value


def parse_analysis(text: Optional[str], symptoms: str = "", mode: str = "patient") -> AnalysisResult:
    return interpret_analysis(text, symptoms, mode).value


def parse_object(text: Optional[str], openers: str = "{") -> Optional[Dict[str, Any]]:
    """Decode a JSON object for the enhanced features; None when absent."""
    data = extract_json(text, openers)
    return data if isinstance(data, dict) else None


def parse_list(text: Optional[str]) -> Optional[list]:
    data = extract_json(text, "[")
    return data if isinstance(data, list) else None
