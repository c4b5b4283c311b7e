"""
Command-line interface for generating a video from a GitHub issue or pull request.
"""

import argparse
import logging
import pathlib
import sys

from dotenv import load_dotenv

from .config import GenerationConfig, parse_resolution
from .exceptions import DependencyMissingError
from .io_ffmpeg import check_dependencies, require_dependencies
from .pipeline import generate_video

logger = logging.getLogger("issuecast")


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def load_env() -> None:
    """Load .env from the project root, falling back to the current directory."""
    project_root = pathlib.Path(__file__).parent.parent.parent
    env_path = project_root / ".env"
    if env_path.exists():
        load_dotenv(env_path)
    else:
        load_dotenv()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    ap = argparse.ArgumentParser(
        prog="issuecast",
        description="Generate a narrated video from a GitHub issue or pull request",
    )

    # Source record
    source = ap.add_mutually_exclusive_group()
    source.add_argument("--issue", type=int, metavar="N", help="Issue number")
    source.add_argument("--pr", type=int, metavar="N", help="Pull request number")
    ap.add_argument("--owner", default=None, help="Repository owner (default: $GITHUB_REPO_OWNER)")
    ap.add_argument("--repo", default=None, help="Repository name (default: $GITHUB_REPO_NAME)")
    ap.add_argument(
        "--include-diff", action="store_true", help="Also fetch the pull request diff"
    )

    # Working directory
    ap.add_argument("--working-dir", default=None, help="Working directory (default: fresh temp dir)")
    ap.add_argument(
        "--keep-files", action="store_true", help="Keep intermediate audio and slide files"
    )
    ap.add_argument(
        "--resume",
        default=None,
        metavar="WORKDIR",
        help="Re-run in an earlier working directory, reusing content.json and script.json",
    )
    ap.add_argument(
        "--script-json", default=None, help="Use this script.json instead of generating one"
    )
    ap.add_argument(
        "--export-narration",
        action="store_true",
        help="Also write the combined narration track to output/narration.mp3",
    )

    # Models & voice
    ap.add_argument("--voice", default=None, help="OpenAI TTS voice (default: alloy)")
    ap.add_argument("--tts-model", default=None, help="OpenAI TTS model (default: tts-1-hd)")
    ap.add_argument("--gpt-model", default=None, help="Script model (default: gpt-4o-mini)")
    ap.add_argument("--speed", type=float, default=None, help="TTS speed multiplier")

    # Video
    ap.add_argument("--resolution", default=None, help="WIDTHxHEIGHT (default: 1920x1080)")
    ap.add_argument("--fps", type=int, default=None)
    ap.add_argument("--bitrate", default=None, help="Video bitrate (default: 5000k)")
    ap.add_argument("--max-duration", type=int, default=None, help="Max video length in seconds")
    ap.add_argument(
        "--slide-renderer",
        choices=["browser", "placeholder"],
        default=None,
        help="browser: headless Chromium; placeholder: plain Pillow slides",
    )

    # Publishing
    ap.add_argument("--no-upload", action="store_true", help="Do not upload to YouTube")
    ap.add_argument(
        "--no-post-link", action="store_true", help="Do not comment the video link on GitHub"
    )

    ap.add_argument("--check-deps", action="store_true", help="Check ffmpeg/ffprobe and exit")
    ap.add_argument("--verbose", "-v", action="store_true")

    return ap.parse_args(argv)


def build_config(args: argparse.Namespace) -> GenerationConfig:
    """Environment config with command-line overrides applied."""
    config = GenerationConfig.from_env()
    if args.owner:
        config.owner = args.owner
    if args.repo:
        config.repo = args.repo
    if args.working_dir:
        config.working_dir = args.working_dir
    config.resume_dir = args.resume
    config.script_path = args.script_json
    config.keep_intermediate_files = config.keep_intermediate_files or args.keep_files
    config.include_diff = args.include_diff
    config.export_narration = args.export_narration
    if args.no_upload:
        config.upload_to_youtube = False
    if args.no_post_link:
        config.post_to_github = False

    video = config.video
    for attr, value in (
        ("voice", args.voice),
        ("tts_model", args.tts_model),
        ("script_model", args.gpt_model),
        ("speed", args.speed),
        ("resolution", args.resolution),
        ("fps", args.fps),
        ("bitrate", args.bitrate),
        ("max_duration", args.max_duration),
        ("slide_renderer", args.slide_renderer),
    ):
        if value is not None:
            setattr(video, attr, value)
    parse_resolution(video.resolution)
    return config


def missing_credentials(config: GenerationConfig, args: argparse.Namespace) -> list[str]:
    """Names of required settings that are not set."""
    missing = []
    resuming = bool(args.resume)
    if not config.github_token and not resuming:
        missing.append("GITHUB_TOKEN")
    if not config.owner or not config.repo:
        missing.append("GITHUB_REPO_OWNER/GITHUB_REPO_NAME (or --owner/--repo)")
    if not config.openai_api_key:
        missing.append("OPENAI_API_KEY")
    return missing


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    load_env()
    args = parse_args(argv)
    setup_logging(args.verbose)

    if args.check_deps:
        checks = check_dependencies()
        for name in ("ffmpeg", "ffprobe"):
            logger.info("%s: %s", name, "ok" if checks[name] else "MISSING")
        return 0 if checks["all_ok"] else 1

    number = args.issue if args.issue is not None else args.pr
    if number is None:
        logger.error("Specify --issue N or --pr N")
        return 1
    if number <= 0:
        logger.error("Issue/PR number must be positive, got %d", number)
        return 1
    kind = "issue" if args.issue is not None else "pr"

    try:
        config = build_config(args)
    except ValueError as e:
        logger.error("%s", e)
        return 1

    missing = missing_credentials(config, args)
    if missing:
        logger.error("Missing required configuration: %s", ", ".join(missing))
        return 1

    try:
        require_dependencies()
    except DependencyMissingError as e:
        logger.error("%s", e)
        return 1

    logger.info("=== Generating video for %s #%d in %s/%s ===", kind, number, config.owner, config.repo)
    result = generate_video(kind, number, config)

    if not result.success:
        logger.error("Video generation failed at %s: %s", result.failed_stage.value, result.error)
        logger.debug("%s", result.traceback)
        if result.working_dir:
            logger.error("Intermediate files kept in %s", result.working_dir)
        return 1

    logger.info("=== Video generated ===")
    logger.info("Video: %s (~%ds)", result.video.path, result.video.duration)
    if result.upload:
        logger.info("YouTube: %s", result.upload.url)
        if config.post_to_github:
            logger.info("GitHub comment: %s", "posted" if result.link_posted else "failed")
    else:
        logger.info("YouTube upload skipped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
