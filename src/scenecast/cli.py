import threading
from contextlib import ExitStack
from datetime import datetime
from typing import Optional

import click

from ._version import VERSION
from .exceptions import SceneCastError
from .logger import export_log, print_banner

# Lazy load rich to keep `--help` fast
_console = None


def get_console():
    global _console
    if _console is None:
        from rich.console import Console
        _console = Console()
    return _console


def _build_player(source: str, captions: bool = True):
    from .core.player import ScenePlayer
    from .render.renderer import CardRenderer

    player = ScenePlayer(CardRenderer(), src=source)
    player.set_captions(captions)
    player.load()
    return player


@click.group()
@click.version_option(version=VERSION, prog_name="scenecast")
def cli():
    """scenecast - play and export timed scene documents"""
    pass


@cli.command()
@click.argument("source")
def info(source: str):
    """Show the computed timeline of SOURCE."""
    from rich.table import Table

    from .config import get_settings
    from .core.timeline import SceneTimeline
    from .sources import SourceLoader

    console = get_console()
    try:
        document = SourceLoader().load(source)
    except SceneCastError as e:
        raise click.ClickException(str(e))
    playback = get_settings().playback
    timeline = SceneTimeline.build(
        document.scenes,
        ms_per_word=playback.ms_per_word,
        min_auto_ms=playback.min_auto_duration_ms,
        default_ms=playback.default_duration_ms,
    )

    table = Table(title=f"Timeline ({timeline.total_duration_ms / 1000:.2f}s)")
    table.add_column("#", justify="right", style="cyan", no_wrap=True)
    table.add_column("Start", justify="right")
    table.add_column("End", justify="right")
    table.add_column("Duration", justify="right", style="green")
    table.add_column("Audio")
    table.add_column("Pause BG")
    table.add_column("Speech", style="magenta", overflow="ellipsis", max_width=40)

    for i, scene in enumerate(timeline.scenes):
        table.add_row(
            str(i),
            f"{scene.start_time_ms / 1000:.2f}s",
            f"{scene.end_time_ms / 1000:.2f}s",
            f"{scene.duration_ms / 1000:.2f}s" + (" (auto)" if scene.spec.is_auto else ""),
            "yes" if scene.audio else "",
            "yes" if scene.pause_background else "",
            scene.speech or "",
        )
    console.print(table)
    if document.audio:
        console.print(f"Background audio: [bold]{document.audio}[/]")


@cli.command()
@click.argument("source")
@click.option("--captions/--no-captions", default=True, help="Print scene narration")
def play(source: str, captions: bool):
    """Play SOURCE headlessly in real time, printing scene changes."""
    print_banner()
    console = get_console()
    try:
        player = _build_player(source, captions)
    except SceneCastError as e:
        raise click.ClickException(str(e))

    done = threading.Event()
    last_scene = {"index": -1}

    def on_timeupdate(current_ms: float) -> None:
        idx = player.current_scene_index
        if idx != last_scene["index"]:
            last_scene["index"] = idx
            scene = player.current_scene
            line = f"[cyan]{current_ms / 1000:6.2f}s[/] scene {idx}"
            if captions and scene.speech:
                line += f": [italic]{scene.speech}[/]"
            console.print(line)

    player.on("timeupdate", on_timeupdate)
    player.on("ended", lambda total_ms: done.set())
    player.play()
    try:
        done.wait()
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/]")
    finally:
        player.close()
    console.print(f"✅ Finished at {player.current_time / 1000:.2f}s")


@cli.command()
@click.argument("source")
@click.option("-o", "--output", type=click.Path(dir_okay=False), default=None, help="Output .mp4 path")
@click.option("--fps", type=click.IntRange(min=1), default=None, help="Capture frame rate (default: CAPTURE_FPS)")
@click.option("--captions/--no-captions", default=True, help="Burn narration captions into frames")
@click.option("--log/--no-log", "write_log", default=False, help="Write a detailed export log to OUTPUT_DIR")
def export(source: str, output: Optional[str], fps: Optional[int], captions: bool, write_log: bool):
    """Capture SOURCE in real time and encode it to a video file."""
    from rich.progress import BarColumn, Progress, TextColumn

    from .capture.exporter import VideoExporter
    from .config import get_settings

    print_banner()
    console = get_console()
    with ExitStack() as stack:
        if write_log:
            job_id = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_path = stack.enter_context(export_log(get_settings().paths.output_dir, job_id))
            console.print(f"Logging to {log_path}")
        try:
            player = _build_player(source, captions)
        except SceneCastError as e:
            raise click.ClickException(str(e))
        stack.callback(player.close)

        exporter = VideoExporter(player, fps=fps)
        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            console=console,
        ) as progress:
            task = progress.add_task("Capturing", total=100)

            def on_progress(update):
                progress.update(task, completed=update.percent, description=update.message)

            try:
                path = exporter.capture_and_encode(output, progress=on_progress)
            except KeyboardInterrupt:
                exporter.cancel()
                raise click.Abort()
            except SceneCastError as e:
                raise click.ClickException(str(e))

    console.print(f"🎬 Wrote [bold green]{path}[/]")


if __name__ == "__main__":
    cli()
