import pytest
from rich.console import Console

from hustleai.domain.errors import ErrorKind
from hustleai.domain.models.ai import ChatReply, CoachingAdvice, TaskDraft, TranslationBatch
from hustleai.domain.models.health import BackendStatus, HealthStatus
from hustleai.domain.models.results import OperationResult
from hustleai.infrastructure.cli.display import ConsoleDisplay


@pytest.fixture
def console():
    """A recording console wide enough to keep rows on one line."""
    return Console(record=True, width=120, color_system=None)


@pytest.fixture
def console_display(console):
    return ConsoleDisplay(console=console)


def test_display_health(console_display, console):
    status = HealthStatus(status=BackendStatus.ONLINE, last_check=1_700_000_000, latency_ms=42.4, version="1.2.0", message="AI Online")

    console_display.display_health(status)

    text = console.export_text()
    assert "online" in text
    assert "AI Online" in text
    assert "42 ms" in text
    assert "1.2.0" in text


def test_display_health_never_checked(console_display, console):
    console_display.display_health(HealthStatus())

    assert "never" in console.export_text()


def test_display_chat_marks_fallback_answers(console_display, console):
    reply = ChatReply(response="I'm here to help!", suggestions=["Post a new task"], confidence=60)

    console_display.display_chat(OperationResult.fallback(reply, ErrorKind.TIMEOUT))

    text = console.export_text()
    assert "I'm here to help!" in text
    assert "Post a new task" in text
    assert "offline answer (timeout)" in text
    assert "confidence 60" in text


def test_display_task_from_cache(console_display, console):
    draft = TaskDraft(
        title="Walk my dog",
        description="Walk my dog",
        category="pet_care",
        estimated_pay={"min": 15.0, "max": 30.0},
        estimated_duration="1-2 hours",
        xp_reward=22,
    )

    console_display.display_task(OperationResult.success(draft, cached=True))

    text = console.export_text()
    assert "$15 - $30" in text
    assert "pet_care" in text
    assert "cached" in text


def test_display_translations(console_display, console):
    batch = TranslationBatch(translations=["Hola", "Adiós"], target_language="es")

    console_display.display_translations(["Hello", "Goodbye"], OperationResult.success(batch))

    text = console.export_text()
    assert "Hola" in text
    assert "Goodbye" in text


def test_display_error(console_display, console):
    console_display.display_error("Something went wrong")

    text = console.export_text()
    assert "Error" in text
    assert "Something went wrong" in text


def test_display_coaching_skips_empty_sections(console_display, console):
    advice = CoachingAdvice(next_milestone="Level 10", tips=["Respond to messages within 1 hour"])

    console_display.display_coaching(OperationResult.fallback(advice, ErrorKind.BACKEND_OFFLINE))

    text = console.export_text()
    assert "Level 10" in text
    assert "- Respond to messages within 1 hour" in text
    assert "Strengths" not in text
    assert "offline answer (backend_offline)" in text
