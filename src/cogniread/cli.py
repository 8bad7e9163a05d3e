from __future__ import annotations

import json
import logging
from dataclasses import replace as dc_replace
from pathlib import Path
from typing import List, TypedDict

import typer
import yaml

from .config import CogniReadConfig, load_config
from .feedback import (
    FeedbackAnalyzer,
    FeedbackRequest,
    NoOpAnalyzer,
    NoOpRefiner,
    OpenAIFeedbackAnalyzer,
    OpenAITranscriptRefiner,
    TranscriptRefiner,
)
from .generation import GenerationError, OpenAIPassageGenerator, generate_test
from .history import HistoryStoreError, JsonSessionStore, export_history_csv
from .llm import OpenAITextClient
from .llm.openai_client import resolve_api_key
from .models import Complexity, Language, SessionResult, TestInstance
from .pipeline import score_session
from .profiles import (
    InvalidProfileError,
    ProfileRegistry,
    ProfileResolved,
    build_registry,
)
from .tokenization import tokenize

logger = logging.getLogger(__name__)

app = typer.Typer(help="CogniRead reading-and-recall scoring CLI.", no_args_is_help=True)
history_app = typer.Typer(help="Inspect and maintain the session history.")
app.add_typer(history_app, name="history")


class ProfilePayload(TypedDict):
    id: str
    label: str
    language: str
    mean_wpm: float
    sd_wpm: float
    mean_coverage: float
    sd_coverage: float
    reliability_coverage: float


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure logging before any sub-command runs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def score(
    test_path: Path = typer.Option(
        ..., "--test", exists=True, readable=True, dir_okay=False, help="Test instance JSON."
    ),
    elapsed: float = typer.Option(..., "--elapsed", help="Reading time in seconds."),
    recall: str | None = typer.Option(None, "--recall", help="Recall text."),
    recall_file: Path | None = typer.Option(
        None, "--recall-file", exists=True, readable=True, dir_okay=False
    ),
    config: Path | None = typer.Option(None, "--config", "-c"),
    history: Path | None = typer.Option(
        None, "--history", help="Override the configured history file."
    ),
    save: bool = typer.Option(True, "--save/--no-save", help="Persist the result."),
    refine: bool = typer.Option(
        False, "--refine/--no-refine", help="Clean the recall with the LLM before scoring."
    ),
    feedback: bool = typer.Option(
        False, "--feedback/--no-feedback", help="Attach LLM narrative feedback."
    ),
) -> None:
    """Score a recall attempt against a test and print the result as JSON."""
    cfg = load_config(config)
    if history is not None:
        cfg.history_path = str(history)
    recall_text = _read_recall(recall, recall_file)
    test = _load_test(test_path)
    registry = _build_registry(cfg)
    store = JsonSessionStore(cfg.history_path)

    try:
        previous = store.latest()
    except HistoryStoreError as exc:
        raise typer.BadParameter(str(exc), param_hint="--history") from exc

    if refine:
        recall_text = _build_refiner(cfg).refine(recall_text)

    result = score_session(test, recall_text, elapsed, previous, registry=registry, config=cfg)

    if feedback:
        narrative = _build_analyzer(cfg).analyze(
            FeedbackRequest(
                passage=test.passage,
                recall_text=recall_text,
                keypoints=[kp.text for kp in test.keypoints],
                session_id=result.session_id,
            )
        )
        result = dc_replace(result, narrative_feedback=narrative or None)

    if save:
        store.save(result)
    typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


@app.command()
def generate(
    output: Path = typer.Option(..., "--output", "-o", dir_okay=False),
    topic: str | None = typer.Option(None, "--topic", help="Defaults to a random topic."),
    complexity: Complexity | None = typer.Option(
        None, "--complexity", help="Defaults to a random complexity."
    ),
    profile_id: str | None = typer.Option(None, "--profile-id"),
    duration: float | None = typer.Option(None, "--duration", help="Reading time (s)."),
    config: Path | None = typer.Option(None, "--config", "-c"),
) -> None:
    """Generate a new test instance through the OpenAI passage generator."""
    cfg = load_config(config)
    registry = _build_registry(cfg)
    resolution = registry.resolve(profile_id or cfg.default_profile_id)
    if not isinstance(resolution, ProfileResolved):
        raise typer.BadParameter(
            f"Unknown normative profile '{resolution.profile_id}'.", param_hint="--profile-id"
        )
    generator = OpenAIPassageGenerator(_build_client(cfg))
    try:
        test = generate_test(
            generator,
            resolution.profile,
            cfg,
            topic=topic,
            complexity=complexity,
            duration_sec=duration,
        )
    except GenerationError as exc:
        typer.echo(f"Generation failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(
        json.dumps(test.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
    )
    typer.echo(f"Wrote test {test.id} ({len(test.keypoints)} key points) to {output}")


@app.command("tokenize")
def tokenize_command(
    text: str = typer.Argument(..., help="Text to tokenize."),
    language: Language = typer.Option(Language.PT_BR, "--language", "-l"),
) -> None:
    """Print the significant tokens the scorer would extract from TEXT."""
    typer.echo(json.dumps(tokenize(text, language), ensure_ascii=False))


@app.command()
def profiles(config: Path | None = typer.Option(None, "--config", "-c")) -> None:
    """List the available normative profiles."""
    registry = _build_registry(load_config(config))
    payload: List[ProfilePayload] = [
        {
            "id": profile.id,
            "label": profile.label,
            "language": profile.language,
            "mean_wpm": profile.mean_wpm,
            "sd_wpm": profile.sd_wpm,
            "mean_coverage": profile.mean_coverage,
            "sd_coverage": profile.sd_coverage,
            "reliability_coverage": profile.reliability_coverage,
        }
        for profile in registry
    ]
    typer.echo(json.dumps({"profiles": payload}, indent=2, ensure_ascii=False))


@app.command("print-config")
def print_config() -> None:
    """Print the default configuration as YAML."""
    cfg = CogniReadConfig()
    typer.echo(yaml.safe_dump(cfg.to_dict(), sort_keys=False))


@history_app.command("list")
def history_list(
    config: Path | None = typer.Option(None, "--config", "-c"),
    history: Path | None = typer.Option(None, "--history"),
) -> None:
    """Print stored sessions, most recent first."""
    store = _build_store(config, history)
    sessions = _read_history(store)
    typer.echo(
        json.dumps([s.to_dict() for s in sessions], indent=2, ensure_ascii=False)
    )


@history_app.command("latest")
def history_latest(
    config: Path | None = typer.Option(None, "--config", "-c"),
    history: Path | None = typer.Option(None, "--history"),
) -> None:
    """Print the most recent session, or nothing when the history is empty."""
    store = _build_store(config, history)
    sessions = _read_history(store)
    if not sessions:
        typer.echo("No sessions recorded.", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(sessions[0].to_dict(), indent=2, ensure_ascii=False))


@history_app.command("clear")
def history_clear(
    config: Path | None = typer.Option(None, "--config", "-c"),
    history: Path | None = typer.Option(None, "--history"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Delete every stored session."""
    store = _build_store(config, history)
    if not yes:
        typer.confirm(f"Delete all sessions in {store.path}?", abort=True)
    store.clear()
    typer.echo(f"Cleared session history at {store.path}")


@history_app.command("export-csv")
def history_export_csv(
    output: Path = typer.Option(..., "--output", "-o", dir_okay=False),
    config: Path | None = typer.Option(None, "--config", "-c"),
    history: Path | None = typer.Option(None, "--history"),
) -> None:
    """Export the session history as CSV."""
    store = _build_store(config, history)
    rows = export_history_csv(_read_history(store), output)
    typer.echo(f"Wrote {rows} sessions to {output}")


def main() -> None:
    app()


def _read_recall(recall: str | None, recall_file: Path | None) -> str:
    """Exactly one of --recall / --recall-file must be supplied."""
    if (recall is None) == (recall_file is None):
        raise typer.BadParameter("Provide exactly one of --recall or --recall-file.")
    if recall_file is not None:
        return recall_file.read_text(encoding="utf-8")
    return recall or ""


def _load_test(path: Path) -> TestInstance:
    try:
        return TestInstance.from_dict(json.loads(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
        raise typer.BadParameter(
            f"Invalid test instance file {path}: {exc}", param_hint="--test"
        ) from exc


def _build_registry(config: CogniReadConfig) -> ProfileRegistry:
    try:
        return build_registry(config)
    except (InvalidProfileError, OSError) as exc:
        typer.echo(f"Invalid normative profile configuration: {exc}", err=True)
        raise typer.Exit(code=2) from exc


def _build_store(config_path: Path | None, history: Path | None) -> JsonSessionStore:
    cfg = load_config(config_path)
    return JsonSessionStore(history if history is not None else cfg.history_path)


def _read_history(store: JsonSessionStore) -> List[SessionResult]:
    try:
        return store.list_all()
    except HistoryStoreError as exc:
        raise typer.BadParameter(str(exc), param_hint="--history") from exc


def _build_client(config: CogniReadConfig) -> OpenAITextClient:
    if not config.openai.enabled:
        typer.echo("OpenAI is disabled; enable it under 'openai' in the config.", err=True)
        raise typer.Exit(code=2)
    try:
        api_key = resolve_api_key(config.openai)
    except RuntimeError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc
    return OpenAITextClient(config.openai, api_key=api_key)


def _build_refiner(config: CogniReadConfig) -> TranscriptRefiner:
    if not config.openai.enabled:
        logger.warning("OpenAI is disabled; recall text is scored as given.")
        return NoOpRefiner()
    return OpenAITranscriptRefiner(_build_client(config))


def _build_analyzer(config: CogniReadConfig) -> FeedbackAnalyzer:
    if not config.openai.enabled:
        logger.warning("OpenAI is disabled; no narrative feedback attached.")
        return NoOpAnalyzer()
    return OpenAIFeedbackAnalyzer(_build_client(config))


if __name__ == "__main__":
    main()
