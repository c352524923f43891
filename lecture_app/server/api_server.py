"""FastAPI relay that carries the lecture broadcast to student browsers and remote receivers."""

from __future__ import annotations

import asyncio
import html
import json
import logging
from threading import Thread
from typing import Any, AsyncIterator, Awaitable, Callable

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, StreamingResponse
from pydantic import BaseModel, Field
import uvicorn

from lecture_app.constants.about import APP_NAME, APP_VERSION
from lecture_app.constants.network_constants import SSE_KEEPALIVE_SECONDS
from lecture_app.constants.timer_constants import (
    CRITICAL_THRESHOLD_SECONDS,
    STUDENT_FLASH_SECONDS,
    WARNING_THRESHOLD_SECONDS,
)
from lecture_app.core.channels.base import UnknownEventError
from lecture_app.core.channels.hub import ChannelHub, RelayEnvelope
from lecture_app.core.channels.sse import KEEPALIVE_FRAME, format_sse
from lecture_app.core.markdown_renderer import MATHJAX_SCRIPT, renderer
from lecture_app.core.models import (
    QUESTION_SENT,
    TIMER_UPDATE,
    ChannelMessage,
    QuestionSentEvent,
    TimerSnapshot,
)
from lecture_app.core.settings import LectureSettings

LOGGER = logging.getLogger(__name__)

_STUDENT_PAGE_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>__APP_NAME__ Student</title>
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <style>
      :root { font-family: 'Inter', system-ui, sans-serif; background: #0b1120; color: #f5f7ff; }
      body { margin: 0; padding: 1.5rem; display: flex; flex-direction: column; gap: 1rem; }
      .card { background: #111a30; border-radius: 0.75rem; padding: 1.5rem; box-shadow: 0 0.5rem 1.5rem rgba(0, 0, 0, 0.4); transition: box-shadow 200ms ease; }
      .hidden { display: none; }
      .card.flash { box-shadow: 0 0 0 4px #22c55e, 0 0.5rem 1.5rem rgba(0, 0, 0, 0.4); }
      #countdown { font-size: 3rem; font-variant-numeric: tabular-nums; font-weight: 700; }
      #countdown.calm { color: #38bdf8; }
      #countdown.warning { color: #f59e0b; }
      #countdown.critical { color: #ef4444; }
      #get-ready { color: #f59e0b; min-height: 1.25rem; }
      .progress-track { width: 100%; height: 0.6rem; background: rgba(56, 189, 248, 0.2); border-radius: 999px; overflow: hidden; }
      #progress-fill { height: 100%; width: 0%; background: #38bdf8; transition: width 200ms linear; }
      #last-question { font-size: 1.05rem; line-height: 1.5; }
      .muted { color: #94a3b8; font-size: 0.95rem; }
    </style>
    <script>
      window.MathJax = { tex: { inlineMath: [['$','$']], displayMath: [['$$','$$']] }, svg: { fontCache: 'global' } };
    </script>
    <script defer src="__MATHJAX__"></script>
  </head>
  <body>
    <section class="card" id="idle-card">
      <h1>__APP_NAME__</h1>
      <p class="muted">Waiting for the lecture to start…</p>
    </section>
    <section class="card hidden" id="timer-card">
      <p class="muted">Next check-in question in</p>
      <div id="countdown" class="calm">0:00</div>
      <p id="get-ready"></p>
      <div class="progress-track"><div id="progress-fill"></div></div>
      <p class="muted" id="student-count"></p>
      <p class="muted hidden" id="correct-percentage"></p>
    </section>
    <section class="card hidden" id="question-card">
      <p class="muted">Latest question</p>
      <div id="last-question"></div>
    </section>
    <script>
      const INSTRUCTOR_ID = __INSTRUCTOR_ID__;
      const TOPIC = 'lecture-timer-' + INSTRUCTOR_ID;
      const WARNING_SECONDS = __WARNING__;
      const CRITICAL_SECONDS = __CRITICAL__;
      const FLASH_MS = __FLASH_MS__;

      const idleCard = document.getElementById('idle-card');
      const timerCard = document.getElementById('timer-card');
      const questionCard = document.getElementById('question-card');
      const countdownEl = document.getElementById('countdown');
      const getReadyEl = document.getElementById('get-ready');
      const progressFill = document.getElementById('progress-fill');
      const studentCountEl = document.getElementById('student-count');
      const lastQuestionEl = document.getElementById('last-question');
      const correctEl = document.getElementById('correct-percentage');

      const clientId = Math.random().toString(16).slice(2) + Date.now().toString(16);
      let remaining = 0;
      let intervalMinutes = 0;
      let active = false;
      let tickHandle = null;
      let flashHandle = null;
      let pollHandle = null;
      let cursor = null;

      function setVisibility(element, isVisible) {
        if (isVisible) {
          element.classList.remove('hidden');
        } else {
          element.classList.add('hidden');
        }
      }

      function formatCountdown(seconds) {
        const minutes = Math.floor(seconds / 60);
        const secs = seconds % 60;
        return `${minutes}:${secs.toString().padStart(2, '0')}`;
      }

      function urgencyClass(seconds) {
        if (seconds > WARNING_SECONDS) return 'calm';
        if (seconds >= CRITICAL_SECONDS) return 'warning';
        return 'critical';
      }

      function render() {
        setVisibility(idleCard, !active);
        setVisibility(timerCard, active);
        if (!active) return;
        countdownEl.textContent = formatCountdown(remaining);
        countdownEl.className = urgencyClass(remaining);
        getReadyEl.textContent = remaining > 0 && remaining <= WARNING_SECONDS ? 'Get ready!' : '';
        const total = intervalMinutes * 60;
        const elapsed = total > 0 ? ((total - Math.min(remaining, total)) / total) * 100 : 0;
        progressFill.style.width = `${elapsed}%`;
      }

      function stopTicking() {
        if (tickHandle) {
          clearInterval(tickHandle);
          tickHandle = null;
        }
      }

      function applySnapshot(payload) {
        active = Boolean(payload.autoQuestionEnabled && payload.isRecording);
        intervalMinutes = payload.intervalMinutes || 0;
        remaining = Math.max(0, payload.nextQuestionIn || 0);
        studentCountEl.textContent = `${payload.studentCount || 0} student(s) following`;
        stopTicking();
        if (active && remaining > 0) {
          tickHandle = setInterval(() => {
            remaining = Math.max(0, remaining - 1);
            if (remaining === 0) stopTicking();
            render();
          }, 1000);
        }
        render();
      }

      function applyQuestionSent(envelope) {
        const details = (envelope.payload || {}).lastQuestionSent || {};
        if (envelope.questionHtml) {
          lastQuestionEl.innerHTML = envelope.questionHtml;
          setVisibility(questionCard, true);
          if (window.MathJax && window.MathJax.typesetPromise) {
            window.MathJax.typesetPromise([lastQuestionEl]).catch(() => {});
          }
        } else if (!details.question) {
          setVisibility(questionCard, false);
        }
        correctEl.textContent = '';
        setVisibility(correctEl, false);
        timerCard.classList.add('flash');
        if (flashHandle) clearTimeout(flashHandle);
        flashHandle = setTimeout(() => timerCard.classList.remove('flash'), FLASH_MS);
      }

      function applyQuestionStats(payload) {
        const percentage = payload.correctPercentage;
        if (typeof percentage !== 'number') {
          setVisibility(correctEl, false);
          return;
        }
        correctEl.textContent = `${Math.round(percentage)}% of the class answered correctly`;
        setVisibility(correctEl, true);
      }

      function handleEnvelope(envelope) {
        if (envelope.event === 'timer_update') {
          applySnapshot(envelope.payload || {});
        } else if (envelope.event === 'question_sent') {
          applyQuestionSent(envelope);
        } else if (envelope.event === 'question_stats') {
          applyQuestionStats(envelope.payload || {});
        }
      }

      async function pollOnce() {
        const params = new URLSearchParams({ client_id: clientId });
        if (cursor !== null) params.set('since', cursor);
        try {
          const response = await fetch(`/channels/${encodeURIComponent(TOPIC)}/messages?${params}`);
          const body = await response.json();
          (body.messages || []).forEach(handleEnvelope);
          if (typeof body.cursor === 'number') cursor = body.cursor;
        } catch (error) {
          console.error('Error polling lecture timer:', error);
        }
      }

      function startPolling(intervalSeconds) {
        if (pollHandle) return;
        pollOnce();
        pollHandle = setInterval(pollOnce, Math.max(500, intervalSeconds * 1000));
      }

      function startStream(pollSeconds) {
        const source = new EventSource(`/channels/${encodeURIComponent(TOPIC)}/stream`);
        const onEvent = (event) => {
          try {
            handleEnvelope(JSON.parse(event.data));
          } catch (error) {
            console.error('Ignoring malformed event:', error);
          }
        };
        source.addEventListener('timer_update', onEvent);
        source.addEventListener('question_sent', onEvent);
        source.addEventListener('question_stats', onEvent);
        source.onerror = () => {
          if (source.readyState === EventSource.CLOSED) {
            startPolling(pollSeconds);
          }
        };
      }

      async function connect() {
        let capabilities = {};
        try {
          const response = await fetch('/capabilities');
          capabilities = await response.json();
        } catch (error) {
          console.error('Capability detection failed, polling instead:', error);
        }
        const pollSeconds = capabilities.poll_interval_seconds || 2;
        if (capabilities.push && window.EventSource) {
          startStream(pollSeconds);
        } else {
          startPolling(pollSeconds);
        }
      }

      window.addEventListener('beforeunload', () => {
        stopTicking();
        if (pollHandle) clearInterval(pollHandle);
        if (flashHandle) clearTimeout(flashHandle);
      });

      render();
      connect();
    </script>
  </body>
</html>
"""


def render_student_page(instructor_id: str, flash_seconds: float = STUDENT_FLASH_SECONDS) -> str:
    replacements = {
        "__APP_NAME__": html.escape(APP_NAME),
        "__MATHJAX__": MATHJAX_SCRIPT,
        # json.dumps yields a quoted JS string literal; "</" is escaped so it cannot close the script tag.
        "__INSTRUCTOR_ID__": json.dumps(instructor_id).replace("</", "<\\/"),
        "__WARNING__": str(WARNING_THRESHOLD_SECONDS),
        "__CRITICAL__": str(CRITICAL_THRESHOLD_SECONDS),
        "__FLASH_MS__": str(int(flash_seconds * 1000)),
    }
    page = _STUDENT_PAGE_HTML
    for placeholder, value in replacements.items():
        page = page.replace(placeholder, value)
    return page


class PublishPayload(BaseModel):
    """Payload schema for publishing onto a topic."""

    event: str
    payload: dict[str, Any] = Field(default_factory=dict)


def envelope_to_wire(envelope: RelayEnvelope) -> dict[str, Any]:
    """Serialize an envelope for HTTP clients, adding rendered question HTML."""
    data = envelope.to_dict()
    if envelope.message.event == QUESTION_SENT:
        details = envelope.message.payload.get("lastQuestionSent") or {}
        question = details.get("question") if isinstance(details, dict) else None
        data["questionHtml"] = renderer.render_fragment(question if isinstance(question, str) else None)
    return data


def _validate_message(message: ChannelMessage) -> None:
    if message.event == TIMER_UPDATE:
        TimerSnapshot.from_payload(message.payload)
    elif message.event == QUESTION_SENT:
        QuestionSentEvent.from_payload(message.payload)


async def sse_frames(
    hub: ChannelHub,
    topic: str,
    is_disconnected: Callable[[], Awaitable[bool]],
    keepalive_seconds: float = SSE_KEEPALIVE_SECONDS,
) -> AsyncIterator[str]:
    """Yield retained state, then live envelopes, as Server-Sent Events frames."""
    stream = hub.open_stream(topic)
    try:
        for envelope in stream.retained:
            yield format_sse(envelope_to_wire(envelope), event=envelope.message.event, event_id=envelope.cursor)
        while not await is_disconnected():
            envelope = await stream.get(timeout=keepalive_seconds)
            if envelope is None:
                yield KEEPALIVE_FRAME
                continue
            yield format_sse(envelope_to_wire(envelope), event=envelope.message.event, event_id=envelope.cursor)
    except asyncio.CancelledError:
        LOGGER.debug("Stream for %s cancelled", topic)
        raise
    finally:
        stream.close()


def _get_hub_dependency(hub: ChannelHub):
    def dependency() -> ChannelHub:
        return hub

    return dependency


def create_api_app(
    hub: ChannelHub,
    settings: LectureSettings,
    *,
    keepalive_seconds: float = SSE_KEEPALIVE_SECONDS,
) -> FastAPI:
    """Create a FastAPI application relaying topics through ``hub``."""
    app = FastAPI(title=f"{APP_NAME} Relay", version=APP_VERSION)
    hub_dep = _get_hub_dependency(hub)

    @app.get("/", response_class=HTMLResponse)
    def serve_student_page() -> str:
        return render_student_page(settings.instructor_id, settings.student_flash_seconds)

    @app.get("/lecture/{instructor_id}", response_class=HTMLResponse)
    def serve_lecture_page(instructor_id: str) -> str:
        return render_student_page(instructor_id, settings.student_flash_seconds)

    @app.get("/capabilities")
    def get_capabilities() -> dict[str, object]:
        return {
            "push": True,
            "poll": True,
            "poll_interval_seconds": settings.poll_interval_seconds,
        }

    @app.get("/health")
    def get_health(relay: ChannelHub = Depends(hub_dep)) -> dict[str, object]:
        return {"status": "ok", "topics": len(relay.topics())}

    @app.post("/channels/{topic}/messages", status_code=202)
    def publish_message(
        topic: str,
        body: PublishPayload,
        relay: ChannelHub = Depends(hub_dep),
    ) -> dict[str, object]:
        message = ChannelMessage(event=body.event, payload=body.payload)
        try:
            _validate_message(message)
            envelope = relay.publish(topic, message)
        except (ValueError, UnknownEventError) as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return {"cursor": envelope.cursor}

    @app.get("/channels/{topic}/messages")
    def poll_messages(
        topic: str,
        since: int | None = Query(default=None, ge=0),
        client_id: str | None = Query(default=None, max_length=64),
        relay: ChannelHub = Depends(hub_dep),
    ) -> dict[str, object]:
        result = relay.poll(topic, since=since, client_id=client_id)
        return {
            "cursor": result.cursor,
            "messages": [envelope_to_wire(envelope) for envelope in result.envelopes],
        }

    @app.get("/channels/{topic}/stream")
    async def stream_messages(
        topic: str,
        request: Request,
        relay: ChannelHub = Depends(hub_dep),
    ) -> StreamingResponse:
        return StreamingResponse(
            sse_frames(relay, topic, request.is_disconnected, keepalive_seconds),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    return app


def start_api_server(hub: ChannelHub, settings: LectureSettings) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(hub, settings)
    config = uvicorn.Config(app=app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="LectureRelayServer", daemon=True)
    thread.start()
    LOGGER.info("Relay listening on %s:%s", settings.host, settings.port)
    return thread
