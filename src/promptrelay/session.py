"""SessionEngine — turn rotation, countdown and the prompt → artifact loop.

Every session lives in its own SessionContext, keyed by session id, so any
number of sessions can run side by side. State only advances
waiting → playing → stopped|finished. Calls that do not fit the current
state (or name an unknown session) are logged and return None.

The context lock is released while the generator runs. A response that
comes back after the session was stopped or reset is discarded.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import promptrelay
from promptrelay.config import GameConfig, ModelConfig
from promptrelay.core.adapter import AdapterError, AdapterResponse, MockAdapter, ModelAdapter
from promptrelay.core.clock import CountdownTimer, TimerSignal
from promptrelay.core.errors import GenerationIncomplete, PersistenceError, StateError, ValidationError
from promptrelay.core.extractor import ExtractResult, HtmlExtractor, error_document
from promptrelay.core.generator import GameGenerator, ModelGenerator
from promptrelay.core.sanitizer import sanitize_text
from promptrelay.core.seed import SeedManager
from promptrelay.core.telemetry import TelemetryEntry, TelemetryLogger
from promptrelay.core.validation import (
    DEFAULT_THEME,
    validate_participants,
    validate_prompt,
    validate_session_name,
)
from promptrelay.models import (
    GameArtifact,
    Participant,
    PromptRecord,
    Session,
    SessionState,
    StoreMode,
    Theme,
    new_session_id,
    utc_now,
)
from promptrelay.store import FlatGameStore, SessionStore
from promptrelay.strategies import STRATEGY_REGISTRY
from promptrelay.themes import load_themes, pick_theme

logger = logging.getLogger(__name__)

_LIVE_PROVIDERS = ("openai", "anthropic", "openrouter")


# ------------------------------------------------------------------
# Adapter factory
# ------------------------------------------------------------------


def build_adapter(mcfg: ModelConfig) -> ModelAdapter:
    """Build a single adapter from a ModelConfig."""
    if mcfg.provider == "mock":
        strategy_fn = STRATEGY_REGISTRY.get(mcfg.strategy or "")
        if strategy_fn is None:
            raise ValueError(
                f"Unknown mock strategy: {mcfg.strategy!r}. "
                f"Available: {list(STRATEGY_REGISTRY)}"
            )
        return MockAdapter(model_id=mcfg.name, strategy=strategy_fn)

    if mcfg.provider not in _LIVE_PROVIDERS:
        raise ValueError(f"Unsupported provider: {mcfg.provider!r}")

    api_key = os.environ.get(mcfg.api_key_env or "")
    if not api_key:
        raise ValueError(
            f"API key env var {mcfg.api_key_env!r} not set for model {mcfg.name!r}"
        )
    model_id = mcfg.model_id or mcfg.name

    if mcfg.provider in ("openai", "openrouter"):
        from promptrelay.core.openai_adapter import OPENROUTER_BASE_URL, OpenAIAdapter

        base_url = mcfg.base_url
        headers: dict[str, str] = {}
        if mcfg.provider == "openrouter":
            base_url = base_url or OPENROUTER_BASE_URL
            if mcfg.site_url:
                headers["HTTP-Referer"] = mcfg.site_url
            if mcfg.app_name:
                headers["X-Title"] = mcfg.app_name
        return OpenAIAdapter(
            model_id=model_id,
            api_key=api_key,
            base_url=base_url,
            temperature=mcfg.temperature,
            extra_headers=headers or None,
        )
    from promptrelay.core.anthropic_adapter import AnthropicAdapter

    return AnthropicAdapter(
        model_id=model_id,
        api_key=api_key,
        temperature=mcfg.temperature,
    )


def build_artifact_store(mode: StoreMode, data_dir: Path) -> SessionStore | FlatGameStore:
    if mode is StoreMode.FLAT:
        return FlatGameStore(data_dir)
    return SessionStore(data_dir)


# ------------------------------------------------------------------
# Results and events
# ------------------------------------------------------------------


@dataclass(frozen=True)
class SessionEvent:
    """Lifecycle notification passed to the engine's listener."""

    kind: str  # "started", "warning", "timeout", "finished", "stopped", "reset"
    session_id: str
    remaining_s: int
    detail: dict = field(default_factory=dict)


@dataclass
class TurnResult:
    """Outcome of one prompt submission."""

    session_id: str
    participant: str
    prompt: str
    html: str
    artifact: GameArtifact | None = None
    record: PromptRecord | None = None
    extraction: ExtractResult | None = None
    fallback_reason: str | None = None
    next_participant: str | None = None
    discarded: bool = False

    @property
    def fallback(self) -> bool:
        return self.fallback_reason is not None


@dataclass
class SessionContext:
    """Live, in-memory state of one session."""

    session: Session
    turn_index: int = 0
    timer: CountdownTimer | None = None
    telemetry: TelemetryLogger | None = None
    pending: bool = False
    # Bumped by stop/reset so in-flight generations know they are stale
    epoch: int = 0
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @property
    def session_id(self) -> str:
        return self.session.id

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def participants(self) -> list[Participant]:
        return self.session.participants

    @property
    def current_participant(self) -> Participant | None:
        if not self.session.participants:
            return None
        return self.session.participants[self.turn_index % len(self.session.participants)]

    @property
    def remaining_s(self) -> int:
        return self.timer.remaining if self.timer else 0


# ------------------------------------------------------------------
# Engine
# ------------------------------------------------------------------


class SessionEngine:
    """Runs prompt-relay sessions against one generator and one data directory."""

    def __init__(
        self,
        config: GameConfig,
        generator: GameGenerator | None = None,
        listener: Callable[[SessionEvent], None] | None = None,
    ):
        self.config = config
        self.data_dir = Path(config.data_dir)
        self.sessions = SessionStore(self.data_dir)
        self.artifacts = build_artifact_store(config.mode, self.data_dir)
        if generator is None:
            generator = ModelGenerator(
                build_adapter(config.generator),
                max_tokens=config.generator.max_output_tokens,
                timeout_s=config.generator.timeout_s,
            )
        self.generator = generator
        self.extractor = HtmlExtractor()
        self.catalog = load_themes(config.themes)
        self.seed_mgr = SeedManager(config.seed) if config.seed is not None else None
        self.telemetry_dir = self.data_dir / "telemetry"
        self.listener = listener
        self._contexts: dict[str, SessionContext] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> SessionContext | None:
        with self._lock:
            return self._contexts.get(session_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_session(
        self,
        participants,
        name: str | None = None,
        mode: StoreMode | None = None,
    ) -> SessionContext:
        """New waiting session with a validated roster. Not persisted until start."""
        roster = validate_participants(participants)
        if not roster.valid:
            raise ValidationError(roster.message)
        session_name = validate_session_name(name)
        if not session_name.valid:
            raise ValidationError(session_name.message)
        return self._new_context(roster.sanitized, session_name.sanitized, mode)

    def register_participants(self, session_id: str, participants) -> SessionContext | None:
        """Replace the roster of a waiting session."""
        roster = validate_participants(participants)
        if not roster.valid:
            raise ValidationError(roster.message)
        try:
            ctx = self._require(session_id, "register_participants", SessionState.WAITING)
        except StateError as exc:
            return self._ignored(exc)
        with ctx.lock:
            ctx.session.participants = [
                Participant(name=n, session_id=session_id) for n in roster.sanitized
            ]
        logger.info("Session %s roster: %s", session_id, ", ".join(roster.sanitized))
        return ctx

    def start(self, session_id: str) -> SessionContext | None:
        """Pick a theme, persist the session and start the countdown."""
        try:
            ctx = self._require(session_id, "start", SessionState.WAITING)
        except StateError as exc:
            return self._ignored(exc)

        with ctx.lock:
            if ctx.state is not SessionState.WAITING or not ctx.participants:
                return self._ignored(StateError("start", session_id, ctx.state.value))

            session = ctx.session
            rng = self.seed_mgr.get_rng(session.id) if self.seed_mgr else None
            session.theme = pick_theme(self.catalog, rng)
            session.state = SessionState.PLAYING
            session.last_updated = utc_now()
            try:
                self.sessions.create_session(session)
            except PersistenceError:
                session.state = SessionState.WAITING
                raise

            ctx.turn_index = 0
            ctx.epoch += 1
            timer_cfg = self.config.timer
            ctx.timer = CountdownTimer(
                duration_s=timer_cfg.duration_s,
                warning_s=timer_cfg.warning_s,
                interval_s=timer_cfg.interval_s,
                on_tick=lambda: self.tick(session_id),
                name=f"timer-{session_id}",
            )
            ctx.telemetry = TelemetryLogger(self.telemetry_dir, session_id)
            logger.info(
                "Session %s started: theme=%r participants=%d",
                session_id, session.theme.title, len(ctx.participants),
            )
            self._emit(ctx, "started", theme=session.theme.title)
            if timer_cfg.autostart:
                ctx.timer.start()
        return ctx

    def submit_prompt(self, session_id: str, text: str) -> TurnResult | None:
        """Generate a new artifact for the current participant and advance the turn."""
        try:
            ctx = self._require(session_id, "submit_prompt", SessionState.PLAYING)
        except StateError as exc:
            return self._ignored(exc)

        check = validate_prompt(text)
        if not check.valid:
            raise ValidationError(check.message)
        prompt = check.sanitized

        with ctx.lock:
            if ctx.state is not SessionState.PLAYING or ctx.pending:
                return self._ignored(StateError("submit_prompt", session_id, ctx.state.value))
            ctx.pending = True
            epoch = ctx.epoch
            participant = ctx.current_participant.name
            previous = [p.text for p in ctx.session.prompt_history]
            theme = ctx.session.theme

        try:
            html, extraction, response, fallback = self._generate(
                session_id, participant, prompt, previous, theme,
            )
        except BaseException:
            with ctx.lock:
                ctx.pending = False
            raise

        with ctx.lock:
            ctx.pending = False
            if ctx.epoch != epoch:
                logger.warning(
                    "Discarding response for %s in %s: session was stopped or reset",
                    participant, session_id,
                )
                return TurnResult(
                    session_id=session_id,
                    participant=participant,
                    prompt=prompt,
                    html=html,
                    extraction=extraction,
                    fallback_reason=fallback,
                    discarded=True,
                )
            return self._record_turn(
                ctx, participant, prompt, previous, html, extraction, response, fallback,
            )

    def tick(self, session_id: str) -> TimerSignal | None:
        """Advance the countdown by one tick."""
        ctx = self.get(session_id)
        if ctx is None:
            return None
        with ctx.lock:
            if ctx.state is not SessionState.PLAYING or ctx.timer is None:
                return None
            signal = ctx.timer.tick()
            if signal is TimerSignal.WARNING:
                logger.info("Session %s: %ds left", session_id, ctx.timer.remaining)
                self._emit(ctx, "warning")
            elif signal is TimerSignal.TIMEOUT:
                logger.info("Session %s: time is up", session_id)
                self._emit(ctx, "timeout")
                self._finish(ctx)
            return signal

    def complete(self, session_id: str) -> SessionContext | None:
        """End a playing session early; it counts as finished."""
        try:
            ctx = self._require(session_id, "complete", SessionState.PLAYING)
        except StateError as exc:
            return self._ignored(exc)
        with ctx.lock:
            if ctx.state is not SessionState.PLAYING:
                return self._ignored(StateError("complete", session_id, ctx.state.value))
            self._finish(ctx)
        return ctx

    def stop(self, session_id: str, confirmed: bool = False) -> SessionContext | None:
        """Abort a playing session, then reset. Requires explicit confirmation."""
        if not confirmed:
            logger.info("stop ignored for %s: not confirmed", session_id)
            return None
        try:
            ctx = self._require(session_id, "stop", SessionState.PLAYING)
        except StateError as exc:
            return self._ignored(exc)
        with ctx.lock:
            if ctx.state is not SessionState.PLAYING:
                return self._ignored(StateError("stop", session_id, ctx.state.value))
            ctx.session.state = SessionState.STOPPED
            ctx.epoch += 1
            if ctx.timer:
                ctx.timer.cancel()
            self._persist(ctx)
            self._finalize_telemetry(ctx)
            logger.info("Session %s stopped", session_id)
            self._emit(ctx, "stopped")
        return self.reset(session_id)

    def reset(self, session_id: str) -> SessionContext:
        """Drop the context and hand back a fresh waiting one.

        A playing session is recorded as stopped first. Files on disk stay.
        """
        with self._lock:
            ctx = self._contexts.pop(session_id, None)
        mode = self.config.mode
        if ctx is not None:
            with ctx.lock:
                ctx.epoch += 1
                if ctx.timer:
                    ctx.timer.cancel()
                if ctx.state is SessionState.PLAYING:
                    ctx.session.state = SessionState.STOPPED
                    self._persist(ctx)
                    self._finalize_telemetry(ctx)
                mode = ctx.session.mode
                logger.info("Session %s reset", session_id)
                self._emit(ctx, "reset")
        fresh = self._new_context([], validate_session_name(None).sanitized, mode)
        return fresh

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _new_context(self, names: list[str], name: str, mode: StoreMode | None) -> SessionContext:
        session_id = new_session_id()
        session = Session(
            id=session_id,
            name=name,
            theme=Theme(title=DEFAULT_THEME),
            state=SessionState.WAITING,
            mode=mode or self.config.mode,
            participants=[Participant(name=n, session_id=session_id) for n in names],
        )
        ctx = SessionContext(session=session)
        with self._lock:
            self._contexts[session_id] = ctx
        logger.info("Session %s created (%s)", session_id, name)
        return ctx

    def _require(self, session_id: str, operation: str, state: SessionState) -> SessionContext:
        ctx = self.get(session_id)
        if ctx is None:
            raise StateError(operation, session_id, None)
        if ctx.state is not state:
            raise StateError(operation, session_id, ctx.state.value)
        return ctx

    @staticmethod
    def _ignored(exc: StateError) -> None:
        logger.info("%s", exc)
        return None

    def _generate(
        self,
        session_id: str,
        participant: str,
        prompt: str,
        previous: list[str],
        theme: Theme,
    ) -> tuple[str, ExtractResult | None, AdapterResponse | None, str | None]:
        """Run generator + extraction. Failures become the error document."""
        response = None
        extraction = None
        try:
            response = self.generator.generate(
                prompt, previous, theme,
                context={"session_id": session_id, "participant": participant},
            )
            extraction = self.extractor.extract(
                sanitize_text(response.raw_text), response.finish_reason,
            )
            if not extraction.success:
                raise GenerationIncomplete(extraction.error or "extraction failed")
            if extraction.repaired:
                logger.info("Repaired truncated output for %s in %s", participant, session_id)
            return extraction.html, extraction, response, None
        except (AdapterError, GenerationIncomplete) as exc:
            logger.warning("Generation failed for %s in %s: %s", participant, session_id, exc)
            return (
                error_document(f"AI generation failed: {exc}"),
                extraction,
                response,
                str(exc),
            )

    def _record_turn(
        self,
        ctx: SessionContext,
        participant: str,
        prompt: str,
        previous: list[str],
        html: str,
        extraction: ExtractResult | None,
        response: AdapterResponse | None,
        fallback: str | None,
    ) -> TurnResult:
        session = ctx.session
        artifact = GameArtifact(
            participant=participant,
            prompt=prompt,
            html=html,
            session_id=session.id,
            game_index=len(session.prompt_history) + 1,
            prompt_history=[*previous, prompt],
        )
        self.artifacts.save_artifact(artifact)

        record = PromptRecord(
            participant=participant,
            text=prompt,
            order=len(session.prompt_history) + 1,
        )
        session.prompt_history.append(record)
        session.artifacts.append(artifact)
        ctx.turn_index = (ctx.turn_index + 1) % len(session.participants)
        next_participant = ctx.current_participant.name
        # Logged on failure; the turn has already counted
        self._persist(ctx)

        if ctx.telemetry:
            ctx.telemetry.log_turn(TelemetryEntry(
                turn_number=record.order,
                participant=participant,
                prompt=prompt,
                model_id=response.model_id if response else "",
                model_version=response.model_version if response else "",
                raw_output=response.raw_text if response else "",
                finish_reason=response.finish_reason.value if response else "",
                extraction_strategy=extraction.strategy if extraction else None,
                repaired=extraction.repaired if extraction else False,
                fallback_reason=fallback,
                file_name=artifact.file_name,
                input_tokens=response.input_tokens if response else 0,
                output_tokens=response.output_tokens if response else 0,
                latency_ms=response.latency_ms if response else 0.0,
                remaining_s=ctx.remaining_s,
                engine_version=promptrelay.__version__,
            ))

        logger.info(
            "Turn %d in %s: %s → %s (next: %s)",
            record.order, session.id, participant, artifact.file_name, next_participant,
        )
        return TurnResult(
            session_id=session.id,
            participant=participant,
            prompt=prompt,
            html=html,
            artifact=artifact,
            record=record,
            extraction=extraction,
            fallback_reason=fallback,
            next_participant=next_participant,
        )

    def _finish(self, ctx: SessionContext) -> None:
        ctx.session.state = SessionState.FINISHED
        if ctx.timer:
            ctx.timer.cancel()
        self._persist(ctx)
        self._finalize_telemetry(ctx)
        logger.info(
            "Session %s finished after %d prompt(s)",
            ctx.session_id, len(ctx.session.prompt_history),
        )
        self._emit(ctx, "finished")

    def _persist(self, ctx: SessionContext) -> None:
        # Also runs from the timer thread, where there is nobody to raise to
        try:
            self.sessions.save_session(ctx.session)
        except PersistenceError as exc:
            logger.error("Could not persist session %s: %s", ctx.session_id, exc)

    def _finalize_telemetry(self, ctx: SessionContext) -> None:
        if ctx.telemetry is None:
            return
        ctx.telemetry.finalize_session(
            final_state=ctx.state.value,
            turns=len(ctx.session.prompt_history),
            participants=[p.name for p in ctx.participants],
            extra={"theme": ctx.session.theme.title, "remaining_s": ctx.remaining_s},
        )

    def _emit(self, ctx: SessionContext, kind: str, **detail) -> None:
        if self.listener is None:
            return
        event = SessionEvent(
            kind=kind,
            session_id=ctx.session_id,
            remaining_s=ctx.remaining_s,
            detail=detail,
        )
        try:
            self.listener(event)
        except Exception:
            logger.exception("Session listener failed on %s", kind)
