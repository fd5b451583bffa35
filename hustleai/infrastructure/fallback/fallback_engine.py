"""Local rule-based stand-in for the remote AI operations.

Each method takes the same inputs as the corresponding backend operation and
returns a value of the same shape, computed from keyword tables and fixed
price bands. Results are deterministic for a given input and always carry a
confidence below what a backend answer reports.
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

from hustleai.domain.models.ai import (
    ChatReply,
    CoachingAdvice,
    MatchSet,
    TaskDraft,
    TaskSummary,
    TradeMatch,
    WorkerCandidate,
)
from hustleai.domain.models.common import Location, PayRange

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE_LEVEL = "low"
MATCH_FALLBACK_CONFIDENCE = 50.0
MATCH_RADIUS_KM = 50.0
MAX_LOCAL_MATCHES = 10
AVERAGE_SPEED_KMH = 40.0
EARTH_RADIUS_KM = 6371.0

# (keywords, reply, suggestions, confidence); first match wins
CHAT_RULES: List[Tuple[Tuple[str, ...], str, List[str], float]] = [
    (
        ("help", "what"),
        "I'm here to help! Try saying things like 'Find me delivery gigs' or "
        "'Need someone to walk my dog tomorrow'.",
        ["Find gigs near me", "Post a new task", "Check my earnings"],
        60.0,
    ),
    (
        ("earn", "money"),
        "Want to earn more? Complete more tasks to level up and unlock higher-paying gigs. "
        "Your trust score and completion rate also help you get matched faster!",
        ["View available tasks", "Check my stats", "Level up tips"],
        55.0,
    ),
    (
        ("task", "gig", "post"),
        "You can post a task from the Tasks tab, or browse open gigs nearby. "
        "Describe what you need in one sentence and I'll fill in the details once I'm back online.",
        ["Post a new task", "Browse tasks", "View my tasks"],
        50.0,
    ),
]
CHAT_DEFAULT_SUGGESTIONS = ["Browse tasks", "Post a gig", "View profile"]
CHAT_DEFAULT_CONFIDENCE = 40.0

# (keywords, category, pay band, duration, skills); first match wins
TASK_CATEGORY_RULES = [
    (("dog", "pet"), "pet_care", (15, 30), "1-2 hours", ["Pet Care", "Responsibility"]),
    (("clean",), "cleaning", (25, 60), "2-4 hours", ["Cleaning", "Attention to Detail"]),
    (("move", "furniture"), "moving", (50, 150), "3-5 hours", ["Physical Strength", "Lifting"]),
    (("deliver",), "delivery", (10, 40), "30min-1 hour", ["Driving", "Time Management"]),
    (("tutor", "teach"), "tutoring", (30, 80), "1-2 hours", ["Teaching", "Communication"]),
    (("repair", "fix"), "home_repair", (40, 120), "1-3 hours", ["Handyman", "Problem Solving"]),
]
DEFAULT_TASK_RULE = ("other", (20, 50), "1-2 hours", ["General"])
TASK_SAFETY_NOTE = "Review details and communicate with the hustler before accepting."

# Offline coaching: (context keywords, tip); every matching tip is kept
COACHING_RULES = [
    (("proof", "photo"), "Upload before/after photos on your last 3 tasks"),
    (("response", "message", "reply"), "Respond to messages within 1 hour"),
    (("complete", "deadline", "late"), "Complete your next 2 tasks on time"),
    (("rehire", "repeat", "review"), "Exceed expectations on your next task"),
]
COACHING_DEFAULT_TIPS = [
    "Complete your next 2 tasks on time",
    "Respond to messages within 1 hour",
]
COACHING_MILESTONE = "Finish 5 more tasks to reach your next level"


def haversine_km(a: Location, b: Location) -> float:
    """Great-circle distance between two points in kilometres."""
    d_lat = math.radians(b["lat"] - a["lat"])
    d_lng = math.radians(b["lng"] - a["lng"])
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a["lat"])) * math.cos(math.radians(b["lat"])) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def estimate_arrival(distance_km: float) -> str:
    minutes = round(distance_km / AVERAGE_SPEED_KMH * 60)
    if minutes < 5:
        return "5 min"
    if minutes < 60:
        return f"{minutes} min"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m" if mins else f"{hours}h"


def local_match_score(worker: WorkerCandidate, distance_km: float) -> int:
    """0-100 score from rating, experience, proximity and level."""
    score = (
        (worker.reputation_score / 5) * 30
        + min(worker.tasks_completed / 100, 1) * 20
        + max(0.0, 1 - distance_km / MATCH_RADIUS_KM) * 30
        + (worker.level / 100) * 20
    )
    return int(math.floor(score + 0.5))


class FallbackEngine:
    """Deterministic local answers for when the backend cannot be used."""

    def chat(self, message: str) -> ChatReply:
        lowered = message.lower()
        for keywords, reply, suggestions, confidence in CHAT_RULES:
            if any(k in lowered for k in keywords):
                return ChatReply(response=reply, suggestions=list(suggestions), confidence=confidence)

        return ChatReply(
            response=(
                f"I understand you're asking about: {message}. The AI backend is currently "
                "unavailable, but I can still help you navigate the app!"
            ),
            suggestions=list(CHAT_DEFAULT_SUGGESTIONS),
            confidence=CHAT_DEFAULT_CONFIDENCE,
        )

    def parse_task(self, text: str) -> TaskDraft:
        """Categorizes free text by keyword and attaches that category's price band."""
        lowered = text.lower()
        category, (low, high), duration, skills = DEFAULT_TASK_RULE
        for keywords, rule_category, band, rule_duration, rule_skills in TASK_CATEGORY_RULES:
            if any(k in lowered for k in keywords):
                category, (low, high), duration, skills = rule_category, band, rule_duration, rule_skills
                break

        return TaskDraft(
            title=text.strip()[:60],
            description=f"Looking for help with: {text.strip()}",
            category=category,
            estimated_pay=PayRange(min=float(low), max=float(high)),
            estimated_duration=duration,
            confidence=FALLBACK_CONFIDENCE_LEVEL,
            suggested_skills=list(skills),
            safety_notes=TASK_SAFETY_NOTE,
            xp_reward=(low + high) // 2,
        )

    def translate(self, texts: Sequence[str]) -> List[str]:
        """Identity: the texts come back untranslated."""
        return list(texts)

    def coaching(self, context: Optional[str] = None) -> CoachingAdvice:
        lowered = (context or "").lower()
        tips = [tip for keywords, tip in COACHING_RULES if any(k in lowered for k in keywords)]
        return CoachingAdvice(
            next_milestone=COACHING_MILESTONE,
            tips=tips or list(COACHING_DEFAULT_TIPS),
        )

    def match_trades(self, task: TaskSummary, candidates: Sequence[WorkerCandidate]) -> MatchSet:
        """Ranks candidates within the match radius by local score, best first."""
        scored = []
        for worker in candidates:
            if worker.role == "poster":
                continue
            distance = haversine_km(task.location, worker.location)
            if distance > MATCH_RADIUS_KM:
                continue
            scored.append((local_match_score(worker, distance), distance, worker))

        # Stable sort keeps input order among equal scores
        scored.sort(key=lambda item: item[0], reverse=True)
        matches = [
            TradeMatch(
                user_id=worker.user_id,
                score=float(score),
                reasoning=f"{score}% match based on location, experience, and rating",
                strengths=[
                    f"{worker.tasks_completed} tasks completed",
                    f"{worker.reputation_score:.1f} star rating",
                    f"Level {worker.level}",
                ],
                estimated_arrival=estimate_arrival(distance),
            )
            for score, distance, worker in scored[:MAX_LOCAL_MATCHES]
        ]
        logger.debug(f"Local matching kept {len(matches)} of {len(candidates)} candidate(s) for task {task.task_id}")
        return MatchSet(matches=matches, confidence=MATCH_FALLBACK_CONFIDENCE)
