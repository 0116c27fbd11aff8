"""Main application entry point for LunchTube."""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from lunchtube.lunch_processor import LunchProcessor
from lunchtube.models.state import Settings
from lunchtube.models.video import RankedVideo
from lunchtube.utils.config import load_config, setup_logging
from lunchtube.utils.errors import ApiErrorReason

logger = logging.getLogger(__name__)
console = Console()

API_ERROR_HINTS = {
    ApiErrorReason.API_DISABLED: "Enable the YouTube Data API v3 for your Google Cloud project.",
    ApiErrorReason.NOT_AUTHENTICATED: "Run `lunchtube auth` to connect your Google account.",
    ApiErrorReason.NO_RESULTS: "No videos in your channels matched the configured duration.",
    ApiErrorReason.UNKNOWN: "YouTube could not be reached; showing substitute picks.",
}


class LunchTubeApp:
    """Main application class for LunchTube."""

    def __init__(self, processor: LunchProcessor):
        self.processor = processor
        self.running = False

    async def run(self) -> None:
        """Check the lunch window periodically until interrupted."""
        interval = self.processor.config.get("check_interval_minutes", 5) * 60
        self.processor.on_install()
        self.running = True

        # Setup signal handlers for graceful shutdown
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

        logger.info(f"LunchTube started, checking every {interval // 60} minutes")

        elapsed = interval
        while self.running:
            if elapsed >= interval:
                elapsed = 0
                if await self.processor.check_window():
                    logger.info("Lunch picks refreshed")
            await asyncio.sleep(1)
            elapsed += 1

    def _signal_handler(self, signum, _):
        """Handle shutdown signals gracefully."""
        logger.info(f"Received signal {signum}, shutting down gracefully...")
        self.running = False


def render_videos(videos: List[RankedVideo], api_error: Optional[ApiErrorReason], used_fallback: bool) -> None:
    if used_fallback:
        console.print("[yellow]Showing substitute picks[/yellow]")
        if api_error in API_ERROR_HINTS:
            console.print(f"  {API_ERROR_HINTS[api_error]}")

    table = Table(title=f"{len(videos)} video{'' if len(videos) == 1 else 's'} for lunch")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Channel")
    table.add_column("Length", justify="right")
    table.add_column("Views", justify="right")
    table.add_column("Source")
    table.add_column("Link")
    for index, video in enumerate(videos, start=1):
        table.add_row(
            str(index),
            Text(video.title),
            Text(video.channel_name),
            video.formatted_duration,
            video.formatted_views,
            video.source.value,
            "" if used_fallback else video.url,
        )
    console.print(table)


async def run_command(args: argparse.Namespace, processor: LunchProcessor) -> int:
    if args.command == "run":
        await LunchTubeApp(processor).run()
        return 0

    if args.command == "state":
        state = await processor.get_state()
        if state.mode == "waiting":
            hours, minutes = divmod(state.minutes_until, 60)
            console.print(
                f"Lunch starts at {state.settings.lunch_start} "
                f"(in {hours:02d}h{minutes:02d}m)"
            )
        else:
            render_videos(state.videos, state.api_error, state.used_fallback)
            console.print(f"Refreshes left: {state.remaining_refreshes}")
        return 0

    if args.command == "refresh":
        result = await processor.refresh_videos()
        if result.refresh_limit_reached:
            console.print("[bold]Refresh limit reached, pick one of these![/bold]")
        render_videos(result.videos, result.api_error, result.used_fallback)
        console.print(f"Refreshes left: {result.remaining_refreshes}")
        return 0

    if args.command == "auth":
        result = await processor.authenticate_interactive()
        if result.success:
            console.print("[green]Google account connected[/green]")
            return 0
        console.print(f"[red]Authentication failed:[/red] {result.error}")
        return 1

    if args.command == "watched":
        if processor.mark_watched(args.video_id):
            console.print(f"Marked {args.video_id} as watched")
        else:
            console.print(f"Ignored {args.video_id}")
        return 0

    if args.command == "settings":
        current = processor.load_settings()
        updates = {
            "lunch_start": args.start,
            "lunch_end": args.end,
            "max_duration_minutes": args.max_duration,
            "video_count": args.count,
        }
        if any(value is not None for value in updates.values()):
            merged = current.to_dict()
            merged.update({k: v for k, v in updates.items() if v is not None})
            try:
                current = Settings.from_dict(merged)
            except ValueError as e:
                console.print(f"[red]Invalid settings:[/red] {e}")
                return 1
            processor.update_settings(current)
        console.print(
            f"Lunch {current.lunch_start}-{current.lunch_end}, "
            f"videos up to {current.max_duration_minutes} min, "
            f"{current.video_count} per pick"
        )
        return 0

    return 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lunchtube", description=__doc__)
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("run", help="check the lunch window periodically")
    subparsers.add_parser("state", help="show the countdown or the current picks")
    subparsers.add_parser("refresh", help="re-roll the current picks")
    subparsers.add_parser("auth", help="connect a Google account")

    watched = subparsers.add_parser("watched", help="mark a video as watched")
    watched.add_argument("video_id")

    settings = subparsers.add_parser("settings", help="show or change settings")
    settings.add_argument("--start", help="lunch start, HH:MM")
    settings.add_argument("--end", help="lunch end, HH:MM")
    settings.add_argument("--max-duration", type=int, help="longest video, in minutes")
    settings.add_argument("--count", type=int, help="videos per pick")
    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    args = build_parser().parse_args(argv)

    config = load_config()
    setup_logging(config["log_level"], config["log_file"])

    try:
        processor = LunchProcessor(config)
        sys.exit(asyncio.run(run_command(args, processor)))
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
