"""Domain models for the HustleAI operations.

Response models own the validation/mapping step from the backend's JSON
(camelCase) into typed values; a payload that does not fit raises
`ResponseParseError` so the caller can take its failure route.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from hustleai.domain.errors import ResponseParseError
from hustleai.domain.models.common import LanguageCode, Location, PayRange, UserId

# Confidence reported for a backend answer that does not state its own.
# Local fallbacks always report less than this.
NOMINAL_CONFIDENCE = 90.0
CONFIDENCE_LEVELS = ("low", "medium", "high")
NOMINAL_CONFIDENCE_LEVEL = "medium"


def _require(payload: Any, key: str, kind: type) -> Any:
    if not isinstance(payload, dict):
        raise ResponseParseError(f"Expected a JSON object, got {type(payload).__name__}")
    value = payload.get(key)
    if not isinstance(value, kind):
        raise ResponseParseError(f"Field '{key}' missing or not {kind.__name__}")
    return value


def _number(payload: Dict[str, Any], key: str, default: Optional[float]) -> Optional[float]:
    """Optional finite number; absent or null gives `default`."""
    value = payload.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ResponseParseError(f"Field '{key}' is not a finite number")
    return float(value)


def _str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ResponseParseError("Expected a list of strings")
    return [str(v) for v in value]


# --- Chat ---

@dataclass
class ChatReply:
    response: str
    suggestions: List[str] = field(default_factory=list)
    actions: List[Any] = field(default_factory=list)
    confidence: float = NOMINAL_CONFIDENCE

    @classmethod
    def from_payload(cls, payload: Any) -> "ChatReply":
        response = _require(payload, "response", str)
        actions = payload.get("actions")
        if actions is not None and not isinstance(actions, list):
            raise ResponseParseError("Field 'actions' is not a list")
        return cls(
            response=response,
            suggestions=_str_list(payload.get("suggestions")),
            actions=list(actions or []),
            confidence=_number(payload, "confidence", NOMINAL_CONFIDENCE),
        )


# --- Task parsing ---

@dataclass
class TaskDraft:
    """A task posting suggested from free text."""
    title: str
    description: str
    category: str
    estimated_pay: PayRange
    estimated_duration: str
    confidence: str = NOMINAL_CONFIDENCE_LEVEL
    suggested_skills: List[str] = field(default_factory=list)
    safety_notes: Optional[str] = None
    xp_reward: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "TaskDraft":
        pay = _require(payload, "estimatedPay", dict)
        try:
            estimated_pay = PayRange(min=float(pay["min"]), max=float(pay["max"]))
        except (KeyError, TypeError, ValueError) as e:
            raise ResponseParseError(f"Invalid estimatedPay: {e}") from e
        confidence = payload.get("confidence", NOMINAL_CONFIDENCE_LEVEL)
        if confidence not in CONFIDENCE_LEVELS:
            raise ResponseParseError(f"Unknown confidence level: {confidence!r}")
        xp = _number(payload, "xpReward", None)
        return cls(
            title=_require(payload, "title", str),
            description=_require(payload, "description", str),
            category=_require(payload, "category", str),
            estimated_pay=estimated_pay,
            estimated_duration=str(payload.get("estimatedDuration") or ""),
            confidence=confidence,
            suggested_skills=_str_list(payload.get("suggestedSkills")),
            safety_notes=payload.get("safetyNotes"),
            xp_reward=int(xp) if xp is not None else None,
        )


# --- Translation ---

@dataclass
class TranslationBatch:
    translations: List[str]
    target_language: LanguageCode
    source_language: LanguageCode = LanguageCode("en")

    @staticmethod
    def parse_translations(payload: Any) -> List[Optional[str]]:
        """Extracts the `translations` list; blanks come back as None."""
        raw = _require(payload, "translations", list)
        return [t if isinstance(t, str) and t else None for t in raw]


# --- Coaching ---

@dataclass
class CoachingAdvice:
    """Personal guidance for a worker."""
    next_milestone: str
    strengths: List[str] = field(default_factory=list)
    improvements: List[str] = field(default_factory=list)
    tips: List[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "CoachingAdvice":
        return cls(
            next_milestone=_require(payload, "nextMilestone", str),
            strengths=_str_list(payload.get("strengths")),
            improvements=_str_list(payload.get("improvements")),
            tips=_str_list(payload.get("tips")),
        )


# --- Matching ---

@dataclass
class TaskSummary:
    task_id: str
    title: str
    category: str
    location: Location
    description: str = ""
    pay_amount: float = 0.0

    def to_payload(self) -> Dict[str, Any]:
        return {
            "taskId": self.task_id,
            "title": self.title,
            "category": self.category,
            "description": self.description,
            "payAmount": self.pay_amount,
            "location": dict(self.location),
        }


@dataclass
class WorkerCandidate:
    user_id: UserId
    name: str
    location: Location
    level: int = 1
    tasks_completed: int = 0
    reputation_score: float = 0.0  # 0-5 stars
    role: str = "worker"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.user_id,
            "name": self.name,
            "level": self.level,
            "tasksCompleted": self.tasks_completed,
            "rating": self.reputation_score,
            "role": self.role,
            "location": dict(self.location),
        }


@dataclass
class TradeMatch:
    user_id: UserId
    score: float
    reasoning: str
    strengths: List[str] = field(default_factory=list)
    concerns: List[str] = field(default_factory=list)
    estimated_arrival: Optional[str] = None


@dataclass
class MatchSet:
    matches: List[TradeMatch]
    confidence: float = NOMINAL_CONFIDENCE

    @classmethod
    def from_payload(cls, payload: Any) -> "MatchSet":
        raw = _require(payload, "matches", list)
        matches = []
        for item in raw:
            user_id = _require(item, "userId", str)
            score = _number(item, "score", None)
            if score is None:
                raise ResponseParseError(f"Match for {user_id} has no numeric score")
            matches.append(TradeMatch(
                user_id=UserId(user_id),
                score=score,
                reasoning=str(item.get("reasoning") or ""),
                strengths=_str_list(item.get("strengths")),
                concerns=_str_list(item.get("concerns")),
                estimated_arrival=item.get("estimatedArrival"),
            ))
        return cls(matches=matches, confidence=_number(payload, "confidence", NOMINAL_CONFIDENCE))


# --- Side-effecting submissions ---

@dataclass
class FeedbackSubmission:
    """Match, completion or trade feedback for the learning loop."""
    user_id: UserId
    task_id: str
    feedback_type: str  # 'match' | 'completion' | 'trade_completion'
    details: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {"userId": self.user_id, "taskId": self.task_id, "feedbackType": self.feedback_type, **self.details}


@dataclass
class ExperimentEvent:
    user_id: UserId
    experiment_id: str
    variant: str  # 'control' | 'test_a' | 'test_b'
    success_metric: str
    metric_value: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "experimentId": self.experiment_id,
            "variant": self.variant,
            "successMetric": self.success_metric,
            "metricValue": self.metric_value,
            "metadata": self.metadata,
        }


@dataclass
class FraudReport:
    reporter_id: UserId
    subject_id: str
    reason: str
    context: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {"reporterId": self.reporter_id, "subjectId": self.subject_id, "reason": self.reason, "context": self.context}


@dataclass
class Receipt:
    """Answer to a side-effecting call. `recorded` is False when it did not reach the backend."""
    recorded: bool
    message: str = ""
    analysis: Optional[Dict[str, Any]] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "Receipt":
        if not isinstance(payload, dict):
            raise ResponseParseError("Expected a JSON object")
        analysis = payload.get("analysis")
        return cls(
            recorded=bool(payload.get("success", True)),
            message=str(payload.get("message") or payload.get("error") or ""),
            analysis=analysis if isinstance(analysis, dict) else None,
        )

    @classmethod
    def not_recorded(cls, reason: str) -> "Receipt":
        return cls(recorded=False, message=reason)
