import pytest

from hustleai.domain.errors import ErrorKind, ResponseParseError
from hustleai.domain.events.api_events import CacheHit, EventDispatcher
from hustleai.domain.models.ai import ChatReply, MatchSet, Receipt, TaskDraft, TranslationBatch
from hustleai.domain.models.common import canonical_body
from hustleai.domain.models.health import BackendStatus, HealthStatus
from hustleai.domain.models.requests import RequestDescriptor
from hustleai.domain.models.results import OperationResult, Outcome


def test_cache_key_ignores_body_key_order():
    first = RequestDescriptor(endpoint="/tasks/parse", method="POST", body={"userId": "u1", "input": "x"})
    second = RequestDescriptor(endpoint="/tasks/parse", method="post", body={"input": "x", "userId": "u1"})

    assert first.cache_key() == second.cache_key()
    assert canonical_body(None) == ""


def test_cache_key_distinguishes_endpoints():
    body = {"input": "x"}
    assert (
        RequestDescriptor(endpoint="/a", method="POST", body=body).cache_key()
        != RequestDescriptor(endpoint="/b", method="POST", body=body).cache_key()
    )


def test_operation_result_constructors():
    ok = OperationResult.success("v", cached=True)
    degraded = OperationResult.fallback("v", ErrorKind.TIMEOUT)
    failed = OperationResult.failure("v", ErrorKind.HTTP_ERROR)

    assert ok.ok and ok.cached and not ok.degraded
    assert degraded.degraded and degraded.error is ErrorKind.TIMEOUT
    assert failed.outcome is Outcome.FAILED and not failed.ok


def test_health_status_round_trip_and_availability():
    status = HealthStatus(status=BackendStatus.DEGRADED, last_check=100.0, latency_ms=3200.0, message="AI Slow")

    assert HealthStatus.from_dict(status.to_dict()) == status
    assert status.is_available
    assert status.age_seconds(now=160.0) == 60.0
    assert HealthStatus().age_seconds() == float("inf")
    assert not HealthStatus(status=BackendStatus.OFFLINE).is_available


def test_health_status_rejects_unknown_value():
    with pytest.raises(ValueError):
        HealthStatus.from_dict({"status": "sleepy"})


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"suggestions": []},
        {"response": "hi", "confidence": "very"},
        {"response": "hi", "confidence": float("inf")},
        {"response": "hi", "confidence": True},
        {"response": "hi", "actions": "open_tasks"},
        {"response": "hi", "actions": {"type": "navigate"}},
    ],
)
def test_chat_reply_rejects_malformed_payloads(payload):
    with pytest.raises(ResponseParseError):
        ChatReply.from_payload(payload)


def test_task_draft_rejects_unknown_confidence():
    payload = {
        "title": "t",
        "description": "d",
        "category": "other",
        "estimatedPay": {"min": 1, "max": 2},
        "confidence": "certain",
    }
    with pytest.raises(ResponseParseError):
        TaskDraft.from_payload(payload)


def test_translation_blanks_become_none():
    assert TranslationBatch.parse_translations({"translations": ["Hola", "", None]}) == ["Hola", None, None]


def test_match_requires_numeric_score():
    with pytest.raises(ResponseParseError):
        MatchSet.from_payload({"matches": [{"userId": "w1", "score": "high"}]})


@pytest.mark.parametrize("confidence", ["sure", float("nan"), [90]])
def test_match_set_rejects_non_numeric_confidence(confidence):
    with pytest.raises(ResponseParseError):
        MatchSet.from_payload({"matches": [], "confidence": confidence})


def test_match_set_null_confidence_is_nominal():
    assert MatchSet.from_payload({"matches": [], "confidence": None}).confidence == 90.0


@pytest.mark.parametrize("xp", [float("inf"), float("nan"), "thirty"])
def test_task_draft_rejects_non_finite_xp(xp):
    payload = {
        "title": "t",
        "description": "d",
        "category": "other",
        "estimatedPay": {"min": 1, "max": 2},
        "xpReward": xp,
    }
    with pytest.raises(ResponseParseError):
        TaskDraft.from_payload(payload)


def test_receipt_defaults_to_recorded():
    assert Receipt.from_payload({}).recorded is True
    assert Receipt.from_payload({"success": False, "error": "nope"}).message == "nope"
    assert Receipt.not_recorded("timeout").recorded is False


def test_dispatcher_survives_listener_errors(caplog):
    def broken(event):
        raise RuntimeError("observer bug")

    EventDispatcher(broken).dispatch(CacheHit(endpoint="/tasks/parse"))

    assert "Event listener failed on CacheHit" in caplog.text
