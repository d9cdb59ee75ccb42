"""
Command line entry point.

Streams the console log of a Jenkins job into a log viewer (``lnav`` by
default) or to standard output::

    export JENKINS_USER=me JENKINS_KEY=api-token
    jenkwatch https://ci.example.com/job/build/42/console
"""

import argparse
import logging
import shlex
import sys
from typing import List, Optional

from jenkwatch.config import Config
from jenkwatch.consumer import LogStreamConsumer, viewer_available
from jenkwatch.errors import JenkwatchError
from jenkwatch.log_session import JobLogSession

logger = logging.getLogger("jenkwatch")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jenkwatch",
        description="Stream the console log of a running Jenkins job.",
    )
    parser.add_argument("url", nargs="?", help="url of the job or its console page")
    parser.add_argument(
        "-k",
        "--insecure",
        action="store_true",
        default=None,
        help="do not check TLS certs",
    )
    viewer = parser.add_mutually_exclusive_group()
    viewer.add_argument("--viewer", help="command the log is piped into")
    viewer.add_argument(
        "--no-viewer",
        action="store_true",
        help="write the log to stdout instead of a viewer",
    )
    parser.add_argument("--config", help="JSON settings file")
    parser.add_argument("--timeout", type=float, help="request timeout in seconds")
    parser.add_argument(
        "--poll-interval",
        type=float,
        help="seconds to wait between fetches while the job is running",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def _settings(args: argparse.Namespace) -> dict:
    settings = Config(args.config).load_config()
    if args.insecure is not None:
        settings["insecure"] = args.insecure
    if args.viewer:
        settings["viewer"] = args.viewer
    if args.no_viewer:
        settings["viewer"] = None
    if args.timeout is not None:
        settings["timeout"] = args.timeout
    if args.poll_interval is not None:
        settings["poll_interval"] = args.poll_interval
    return settings


def _problems(settings: dict, url: Optional[str], viewer: List[str]) -> List[str]:
    problems = []
    if viewer and not viewer_available(viewer):
        problems.append(f"{viewer[0]} is not installed")
    problems.extend(f"{name} must be set" for name in Config.missing(settings))
    if not url:
        problems.append("url for jenkins job must be given")
    return problems


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        settings = _settings(args)
    except (OSError, ValueError) as e:
        logger.error("could not load settings: %s", e)
        return 1

    viewer = shlex.split(settings["viewer"]) if settings.get("viewer") else []
    problems = _problems(settings, args.url, viewer)
    for problem in problems:
        logger.error(problem)
    if problems:
        return 1

    try:
        with JobLogSession(
            settings["user"],
            settings["key"],
            args.url,
            insecure=bool(settings.get("insecure")),
            timeout=settings.get("timeout"),
            poll_interval=settings.get("poll_interval") or 0.0,
        ) as session:
            session.check()
            consumer = LogStreamConsumer(session)
            if viewer:
                return consumer.pipe_to(viewer)
            consumer.copy_to(sys.stdout.buffer)
    except JenkwatchError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        return 130
    return 0
