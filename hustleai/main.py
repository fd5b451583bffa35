"""Main entry point for the hustleai command line.

Performs dependency injection (Composition Root), defines the CLI commands
and runs each one on a fresh event loop.
"""

import asyncio
import logging
from typing import Any, Coroutine, Dict, List, Optional

import typer
from typing_extensions import Annotated

# --- Core Layer ---
from hustleai.core.services.health_monitor import HealthMonitor
from hustleai.core.services.hustle_client import HustleAIClient

# --- Domain Layer ---
from hustleai.domain.models.common import LanguageCode, UserId

# --- Infrastructure Layer ---
from hustleai.infrastructure.cli.display import ConsoleDisplay
from hustleai.infrastructure.config.settings import ClientSettings, set_config
from hustleai.infrastructure.monitoring.logger_setup import setup_logging
from hustleai.infrastructure.storage.status_store import DiskStatusStore

logger = logging.getLogger(__name__)


# --- Dependency Injection Container (Manual) ---

def create_dependencies(settings: Optional[ClientSettings] = None) -> Dict[str, Any]:
    """Creates and wires up all dependencies for one command.

    This acts as the Composition Root.
    """
    settings = settings or ClientSettings.load()
    setup_logging(log_level=settings.log_level, log_file=settings.log_file)

    client = HustleAIClient.from_settings(settings)
    store = DiskStatusStore(settings.state_dir)
    monitor = HealthMonitor(
        check_fn=lambda timeout_s: client.check_health(timeout_s=timeout_s),
        store=store,
        interval_s=settings.health_interval_s,
        check_timeout_s=settings.check_timeout_s,
        degraded_threshold_ms=settings.degraded_threshold_ms,
    )
    logger.debug("Dependencies initialized.")
    return {
        "settings": settings,
        "ui": ConsoleDisplay(),
        "client": client,
        "store": store,
        "monitor": monitor,
    }


async def _shutdown(dependencies: Dict[str, Any]) -> None:
    dependencies["monitor"].stop()
    await dependencies["client"].aclose()
    dependencies["store"].close()


def run_async(coro: Coroutine[Any, Any, None]) -> None:
    """Runs an async command body from a sync Typer command."""
    asyncio.run(coro)


# --- Typer App Definition ---
app = typer.Typer(
    name="hustleai",
    help="hustleai: resilient client for the HustleAI backend.",
    add_completion=False,
)


@app.callback()
def main_callback(
    base_url: Annotated[Optional[str], typer.Option("--base-url", help="Backend base URL.")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """Talk to the HustleAI backend from the terminal."""
    if base_url:
        set_config("hustleai.base_url", base_url)
    if verbose:
        set_config("logging.level", "DEBUG")


@app.command()
def health():
    """Check the backend once and show the result."""
    dependencies = create_dependencies()

    async def _run() -> None:
        try:
            status = await dependencies["monitor"].initialize(run_check=True, schedule=False)
            dependencies["ui"].display_health(status)
        finally:
            await _shutdown(dependencies)

    run_async(_run())


@app.command()
def status():
    """Show the last recorded health status without checking again."""
    dependencies = create_dependencies()

    async def _run() -> None:
        try:
            current = dependencies["monitor"].restore()
            if current.last_check:
                dependencies["ui"].display_health(current)
            else:
                dependencies["ui"].display_info("No health check recorded yet. Run 'hustleai health'.")
        finally:
            await _shutdown(dependencies)

    run_async(_run())


@app.command()
def chat(
    user: Annotated[str, typer.Argument(help="User id sending the message.")],
    message: Annotated[str, typer.Argument(help="Message for the assistant.")],
):
    """Send one message to the assistant."""
    dependencies = create_dependencies()

    async def _run() -> None:
        try:
            result = await dependencies["client"].chat(UserId(user), message)
            dependencies["ui"].display_chat(result)
        finally:
            await _shutdown(dependencies)

    run_async(_run())


@app.command()
def parse(
    user: Annotated[str, typer.Argument(help="User id posting the task.")],
    text: Annotated[str, typer.Argument(help="Free-text description of the task.")],
):
    """Turn a free-text request into a task draft."""
    dependencies = create_dependencies()

    async def _run() -> None:
        try:
            result = await dependencies["client"].parse_task(UserId(user), text)
            dependencies["ui"].display_task(result)
        finally:
            await _shutdown(dependencies)

    run_async(_run())


@app.command()
def translate(
    language: Annotated[str, typer.Argument(help="Target language code, e.g. 'es'.")],
    texts: Annotated[List[str], typer.Argument(help="One or more texts to translate.")],
):
    """Translate texts in one bulk request."""
    dependencies = create_dependencies()

    async def _run() -> None:
        try:
            result = await dependencies["client"].translate(texts, LanguageCode(language))
            dependencies["ui"].display_translations(texts, result)
        finally:
            await _shutdown(dependencies)

    run_async(_run())


@app.command("clear-translations")
def clear_translations(
    language: Annotated[Optional[str], typer.Argument(help="Only forget translations into this language.")] = None,
):
    """Forget stored translations."""
    dependencies = create_dependencies()

    async def _run() -> None:
        try:
            dependencies["client"].clear_translation_cache(LanguageCode(language) if language else None)
            dependencies["ui"].display_info(f"Cleared stored translations{f' for {language}' if language else ''}.")
        finally:
            await _shutdown(dependencies)

    run_async(_run())


@app.command()
def coach(
    user: Annotated[str, typer.Argument(help="User id of the worker.")],
    context: Annotated[Optional[str], typer.Argument(help="What the worker wants help with.")] = None,
):
    """Get personal coaching for a worker."""
    dependencies = create_dependencies()

    async def _run() -> None:
        try:
            result = await dependencies["client"].get_coaching(UserId(user), context)
            dependencies["ui"].display_coaching(result)
        finally:
            await _shutdown(dependencies)

    run_async(_run())


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
