"""Command line entry points: a terminal student receiver and a headless relay."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Optional

import typer
import uvicorn

from lecture_app.constants.about import APP_NAME
from lecture_app.constants.network_constants import DEFAULT_SERVER_URL
from lecture_app.core.channels.hub import ChannelHub
from lecture_app.core.channels.remote import HttpPollChannel, HttpPushChannel, detect_channel
from lecture_app.core.scheduling import AsyncioScheduler
from lecture_app.core.services.timer_receiver import OrderingPolicy, StudentTimerReceiver
from lecture_app.core.settings import LectureSettings, load_settings
from lecture_app.server.api_server import create_api_app
from lecture_app.utils.logging_config import configure_logging

cli = typer.Typer(add_completion=False, help=f"{APP_NAME} command line tools")


class Transport(str, Enum):
    AUTO = "auto"
    PUSH = "push"
    POLL = "poll"


def describe_receiver(receiver: StudentTimerReceiver) -> str:
    """One-line rendering of what a student screen would show."""
    if not receiver.is_active:
        return "Waiting for the lecture to start"
    line = f"Next question in {receiver.display_text} [{receiver.urgency.value}]"
    if receiver.get_ready:
        line += " Get ready!"
    if receiver.is_stale:
        line += " (connection lost, showing last known time)"
    return line


async def _open_channel(
    server: str,
    transport: Transport,
    settings: LectureSettings,
) -> HttpPushChannel | HttpPollChannel:
    if transport is Transport.PUSH:
        return HttpPushChannel(server)
    if transport is Transport.POLL:
        return HttpPollChannel(server, poll_interval=settings.poll_interval_seconds)
    return await detect_channel(server, poll_interval=settings.poll_interval_seconds)


async def _watch(
    instructor_id: str,
    server: str,
    transport: Transport,
    ordering: OrderingPolicy,
    duration: float | None,
    settings: LectureSettings,
) -> None:
    channel = await _open_channel(server, transport, settings)
    receiver = StudentTimerReceiver(
        channel,
        instructor_id,
        AsyncioScheduler(),
        ordering=ordering,
        flash_seconds=settings.student_flash_seconds,
        stale_after_seconds=settings.stale_after_seconds,
    )
    last_line: list[str | None] = [None]
    last_question: list[str | None] = [None]

    def render() -> None:
        if receiver.flash and receiver.last_question != last_question[0]:
            last_question[0] = receiver.last_question
            typer.echo(f"Question sent: {receiver.last_question or '(no preview)'}")
        line = describe_receiver(receiver)
        if line != last_line[0]:
            last_line[0] = line
            typer.echo(line)

    receiver.add_listener(render)
    receiver.start()
    render()
    try:
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)
    finally:
        receiver.dispose()
        await channel.aclose()


@cli.command()
def watch(
    instructor_id: str = typer.Argument(..., help="Instructor whose countdown to follow"),
    server: str = typer.Option(DEFAULT_SERVER_URL, help="Base URL of the relay"),
    transport: Transport = typer.Option(Transport.AUTO, help="Subscription transport"),
    sequenced: bool = typer.Option(False, help="Discard snapshots that arrive out of order"),
    duration: Optional[float] = typer.Option(None, help="Stop after this many seconds"),
) -> None:
    """Follow an instructor's countdown in the terminal."""
    settings = load_settings()
    configure_logging(settings.log_level)
    ordering = OrderingPolicy.SEQUENCED if sequenced else settings.ordering_policy
    try:
        asyncio.run(_watch(instructor_id, server, transport, ordering, duration, settings))
    except KeyboardInterrupt:
        typer.echo("Stopped.")


@cli.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Host interface for the relay"),
    port: Optional[int] = typer.Option(None, help="Port for the relay"),
) -> None:
    """Run the relay and student page without the desktop presenter."""
    settings = load_settings()
    updates = {key: value for key, value in {"host": host, "port": port}.items() if value is not None}
    if updates:
        settings = settings.model_copy(update=updates)
    configure_logging(settings.log_level)
    typer.echo(f"Relay for {settings.instructor_id} on http://{settings.host}:{settings.port}/")
    uvicorn.run(
        create_api_app(ChannelHub(), settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    cli()
