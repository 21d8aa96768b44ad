# src/pipeline/controller.py
"""Stage pipeline controller.

Drives a session through structure -> design -> logic -> risk -> complete.
A run segment (``start`` or ``resume``) holds the session lock for its
whole duration, executes the pending stages in fixed order, then finishes
the run: summary, token totals, session deletion, terminal event.

A provider failure aborts the segment. Completed stages stay recorded and
the session is kept so a later ``resume`` can pick up where it stopped.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from docreview.config.settings import Settings
from docreview.core.models import AnalysisSession, ProviderConfig, StageName
from docreview.llm.base_client import BaseLLMClient
from docreview.logging.context import clear_context, set_session_context, set_stage_context
from docreview.pipeline.stages import STAGES, build_messages
from docreview.pipeline.summary import SummaryGenerator
from docreview.session.store import SessionStore
from docreview.streaming.emitter import StreamEmitter
from docreview.streaming.events import (
    CompleteEvent,
    ErrorEvent,
    StageCompletedEvent,
    StageProgressEvent,
    StageStartedEvent,
)
from docreview.tracking.call_logger import CallLogger
from docreview.tracking.token_accountant import aggregate_usage

logger = logging.getLogger(__name__)


class StageController:
    """Runs and resumes analysis sessions.

    Args:
        client: Provider client used for every stage call.
        store: Session store owning session lifetime and locks.
        settings: Application settings.
        summary: Summary generator; built from ``client`` if omitted.
        call_logger: Shared call recorder. When omitted, each run segment
            records into a fresh one.
    """

    def __init__(
        self,
        client: BaseLLMClient,
        store: SessionStore,
        settings: Settings | None = None,
        summary: SummaryGenerator | None = None,
        call_logger: CallLogger | None = None,
    ) -> None:
        self._client = client
        self._store = store
        self._settings = settings or Settings()
        self._summary = summary or SummaryGenerator(client, self._settings)
        self._call_logger = call_logger

    @property
    def store(self) -> SessionStore:
        return self._store

    async def start(
        self,
        document_text: str,
        file_name: str,
        provider_config: ProviderConfig,
        emitter: StreamEmitter,
    ) -> str:
        """Create a session and run every stage. Returns the session id."""
        session = self._store.create(document_text, file_name, provider_config)
        await self._run_segment(session.id, emitter)
        return session.id

    async def resume(
        self,
        session_id: str,
        emitter: StreamEmitter,
        overrides: Mapping[str, Any] | None = None,
    ) -> None:
        """Run the stages a session has not completed yet, then finish.

        ``overrides`` (provider, api_key, custom_api_url, custom_model) apply
        to this segment only.

        Raises:
            SessionNotFoundError: Unknown or expired session id.
            SessionBusyError: Another segment holds the session.
        """
        self._store.require(session_id)
        await self._run_segment(session_id, emitter, overrides)

    # --- Segment ---

    async def _run_segment(
        self,
        session_id: str,
        emitter: StreamEmitter,
        overrides: Mapping[str, Any] | None = None,
    ) -> None:
        async with self._store.lock(session_id):
            session = self._store.require(session_id)
            config = session.provider_config
            if overrides:
                config = config.with_overrides(**overrides)
            calls = self._call_logger or CallLogger()

            set_session_context(session.id)
            pending = session.pending_stages()
            logger.info(
                "Run segment started: pending=%s",
                ",".join(s.value for s in pending) or "none",
            )
            try:
                for stage in pending:
                    await self._execute_stage(session, stage, config, emitter, calls)
                await self._finish(session, config, emitter, calls)
            except Exception as e:
                current = session.current_stage
                failed = current.value if isinstance(current, StageName) else current
                logger.error("Run segment failed during stage %s: %s", failed, e)
                emitter.emit(ErrorEvent(
                    file_id=session.id,
                    stage=failed,
                    message=f"Analysis failed during the {failed} stage",
                    error=str(e),
                ))
                raise
            finally:
                clear_context()

    async def _execute_stage(
        self,
        session: AnalysisSession,
        stage: StageName,
        config: ProviderConfig,
        emitter: StreamEmitter,
        calls: CallLogger,
    ) -> None:
        spec = STAGES[stage]
        set_stage_context(stage.value)
        session.mark_started(stage)
        emitter.emit(StageStartedEvent(
            file_id=session.id, stage=stage, message=f"Starting: {spec.title}",
        ))

        async def forward(delta: str) -> None:
            emitter.emit(StageProgressEvent(file_id=session.id, stage=stage, chunk=delta))

        messages = build_messages(stage, session.document_text, self._settings.max_document_chars)
        response = await self._client.stream(messages, config, on_delta=forward)

        result = spec.build_result(response.content, response.token_usage)
        session.record_stage(result)
        self._store.update(session)
        calls.record(session.id, stage.value, response)
        logger.info(
            "Stage completed: chars=%d, tokens=%s",
            len(response.content),
            result.token_usage.total if result.token_usage else "n/a",
        )
        emitter.emit(StageCompletedEvent(
            file_id=session.id,
            stage=stage,
            message=f"Completed: {spec.title}",
            analysis_result=result,
            token_usage=result.token_usage,
        ))

    async def _finish(
        self,
        session: AnalysisSession,
        config: ProviderConfig,
        emitter: StreamEmitter,
        calls: CallLogger,
    ) -> None:
        set_stage_context(None)
        session.mark_complete()
        summary = await self._summary.generate(
            session.stage_results, config, session_id=session.id, call_logger=calls,
        )
        total = aggregate_usage(
            [r.token_usage for r in session.stage_results.values()] + [summary.token_usage]
        )
        self._store.delete(session.id)

        emitter.emit(CompleteEvent(
            file_id=session.id,
            data=dict(session.stage_results),
            comprehensive_summary=summary.summary_text,
            total_token_usage=total,
            report_id=summary.report_id,
        ))
        logger.info(
            "Run complete: report_id=%s, calls=%d, total_tokens=%d, fallback_summary=%s",
            summary.report_id, len(calls.for_session(session.id)), total.total, summary.fallback,
        )
