"""
Question Sub-State Machine

A Question is the only action that spans more than one inbound message.
Its life cycle is modelled as a small state machine:

    IDLE -> PROMPTING -> ANSWERING -> {ANSWERED | FAILED}

- PROMPTING: the question has just been resolved and its prompt is sent.
- ANSWERING: the user replied but the answer was rejected and attempts remain.
- ANSWERED / FAILED: terminal phases.

This module also holds the built-in answer evaluators for each QuestionKind.
"""

import re
from enum import Enum
from typing import Any, Optional, Sequence, Tuple


class QuestionPhase(str, Enum):
    IDLE = "IDLE"
    PROMPTING = "PROMPTING"
    ANSWERING = "ANSWERING"
    ANSWERED = "ANSWERED"
    FAILED = "FAILED"


class QuestionKind(str, Enum):
    """
    Built-in answer formats:
    - TEXT: any non-blank reply
    - BOOL: yes / no
    - MULTIPLE_CHOICE: the number or the text of one of the choices
    """

    TEXT = "TEXT"
    BOOL = "BOOL"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"


TERMINAL_PHASES = frozenset({QuestionPhase.ANSWERED, QuestionPhase.FAILED})


class InvalidQuestionTransition(ValueError):
    pass


# ==============================================================================
# Transitions
# ==============================================================================


def begin(phase: QuestionPhase) -> QuestionPhase:
    """First resolution of a question: IDLE -> PROMPTING."""
    if phase != QuestionPhase.IDLE:
        raise InvalidQuestionTransition(f"Cannot prompt a question in phase {phase.value}")
    return QuestionPhase.PROMPTING


def attempt(
    phase: QuestionPhase,
    accepted: bool,
    attempts_made: int,
    max_attempts: int,
) -> QuestionPhase:
    """
    Applies one answer attempt.

    attempts_made counts the attempt being evaluated.
    """
    if phase in TERMINAL_PHASES:
        raise InvalidQuestionTransition(f"Question already {phase.value}")
    if accepted:
        return QuestionPhase.ANSWERED
    if attempts_made >= max_attempts:
        return QuestionPhase.FAILED
    return QuestionPhase.ANSWERING


# ==============================================================================
# Built-in evaluators
# ==============================================================================

EvaluationResult = Tuple[bool, Any]

_YES = frozenset({"yes", "y", "yeah", "yep", "sure", "ok", "okay", "true"})
_NO = frozenset({"no", "n", "nope", "nah", "false"})
_PUNCTUATION = re.compile(r"[^\w\s]")


def _normalize(body: str) -> str:
    return _PUNCTUATION.sub("", body or "").strip().lower()


def evaluate_text(body: str) -> EvaluationResult:
    answer = (body or "").strip()
    return bool(answer), answer or None


def evaluate_bool(body: str) -> EvaluationResult:
    normalized = _normalize(body)
    if normalized in _YES:
        return True, True
    if normalized in _NO:
        return True, False
    return False, None


def evaluate_choice(body: str, choices: Sequence[str]) -> EvaluationResult:
    normalized = _normalize(body)
    if normalized.isdigit():
        index = int(normalized) - 1
        if 0 <= index < len(choices):
            return True, choices[index]
        return False, None
    for choice in choices:
        if _normalize(choice) == normalized:
            return True, choice
    return False, None


def normalize_result(result: Any) -> EvaluationResult:
    """Evaluators may return a bare bool or an (accepted, answer) pair."""
    if isinstance(result, tuple):
        accepted, answer = result
        return bool(accepted), answer
    return bool(result), None


def format_choices(body: str, choices: Sequence[str]) -> str:
    lines = [body]
    lines.extend(f"{i}. {choice}" for i, choice in enumerate(choices, start=1))
    return "\n".join(lines)


def default_evaluator(kind: QuestionKind, choices: Optional[Sequence[str]] = None):
    if kind == QuestionKind.BOOL:
        return evaluate_bool
    if kind == QuestionKind.MULTIPLE_CHOICE:
        if not choices:
            raise ValueError("Multiple choice questions need at least one choice")
        return lambda body: evaluate_choice(body, choices)
    return evaluate_text
