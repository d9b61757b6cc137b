"""Provides an interface to assemble and validate a check run without Python code."""

import logging
import sys
from argparse import Namespace
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from configargparse import ArgumentParser
from pydantic import TypeAdapter, ValidationError

from checks_api.builders import ChecksDetailsBuilder, ChecksOutputBuilder
from checks_api.errors import ChecksError
from checks_api.models import (
    ChecksAction,
    ChecksAnnotation,
    ChecksConclusion,
    ChecksDetails,
    ChecksOutput,
    ChecksStatus,
)
from checks_api.publisher import ChecksPublisher, LoggingChecksPublisher

_annotations_adapter: TypeAdapter[list[ChecksAnnotation]] = TypeAdapter(
    list[ChecksAnnotation],
)


def build_argparser() -> ArgumentParser:
    """Create the parser for all options, each settable by flag, env var or config."""
    argparser = ArgumentParser(
        prog="checks-api",
        description="Assemble a check run from the given options, validate it and "
        "print it as JSON. Every option can also be set through its environment "
        "variable or in a config file passed via --config.",
    )
    argparser.add_argument(
        "--config",
        is_config_file=True,
        help="Config file with `option = value` lines, e.g. `status = completed`.",
    )
    argparser.add_argument(
        "--log-level",
        env_var="CHECKS_LOG_LEVEL",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Verbosity of the log output on stderr.",
    )
    argparser.add_argument(
        "--name",
        type=str,
        env_var="CHECKS_NAME",
        required=True,
        help="Name of the check run. Identifies the check run, so keep it unique.",
    )
    argparser.add_argument(
        "--status",
        type=ChecksStatus,
        choices=list(ChecksStatus),
        env_var="CHECKS_STATUS",
        required=True,
        help="Lifecycle stage of the check run.",
    )
    argparser.add_argument(
        "--conclusion",
        type=ChecksConclusion,
        choices=list(ChecksConclusion),
        env_var="CHECKS_CONCLUSION",
        required=False,
        help="Outcome of the check run, only permitted with status `completed`.",
    )
    argparser.add_argument(
        "--details-url",
        type=str,
        env_var="CHECKS_DETAILS_URL",
        required=False,
        help="http(s) URL of a site with the full details of the check run.",
    )
    argparser.add_argument(
        "--started-at",
        type=datetime.fromisoformat,
        env_var="CHECKS_STARTED_AT",
        required=False,
        help="ISO 8601 start time. Defaults to now for check runs without conclusion.",
    )
    argparser.add_argument(
        "--completed-at",
        type=datetime.fromisoformat,
        env_var="CHECKS_COMPLETED_AT",
        required=False,
        help="ISO 8601 completion time. Defaults to now for concluded check runs.",
    )
    argparser.add_argument(
        "--title",
        type=str,
        env_var="CHECKS_TITLE",
        required=False,
        help="Title of the check run output. Requires --summary as well.",
    )
    argparser.add_argument(
        "--summary",
        type=str,
        env_var="CHECKS_SUMMARY",
        required=False,
        help="Summary of the check run output, supports markdown.",
    )
    argparser.add_argument(
        "--text",
        type=str,
        env_var="CHECKS_TEXT",
        required=False,
        help="Details text of the check run output, supports markdown.",
    )
    argparser.add_argument(
        "--annotations-json",
        type=Path,
        env_var="CHECKS_ANNOTATIONS_JSON",
        required=False,
        help="JSON file holding a list of annotations to add to the output.",
    )
    argparser.add_argument(
        "--action",
        nargs=3,
        action="append",
        metavar=("LABEL", "DESCRIPTION", "IDENTIFIER"),
        default=[],
        help="Action offered with the check run, may be given multiple times.",
    )
    return argparser


def output_from_args(args: Namespace) -> ChecksOutput | None:
    """Build the check run output, or None if no output option was given.

    :raises MissingValueError: if only one of title and summary was given
    :raises ValidationError: if the annotations file holds invalid annotations
    """
    if all(
        value is None
        for value in (args.title, args.summary, args.text, args.annotations_json)
    ):
        return None

    builder = ChecksOutputBuilder(args.title, args.summary)
    if args.text is not None:
        builder.with_text(args.text)
    if args.annotations_json is not None:
        json_content = args.annotations_json.read_bytes()
        builder.with_annotations(_annotations_adapter.validate_json(json_content))
    return builder.build()


def details_from_args(args: Namespace) -> ChecksDetails:
    """Build and validate the check run details described by the parsed options."""
    builder = ChecksDetailsBuilder(args.name, args.status)
    if args.details_url is not None:
        builder.with_details_url(args.details_url)
    if args.started_at is not None:
        builder.with_started_at(args.started_at)
    if args.conclusion is not None:
        builder.with_conclusion(args.conclusion)
    if args.completed_at is not None:
        builder.with_completed_at(args.completed_at)
    if (output := output_from_args(args)) is not None:
        builder.with_output(output)
    builder.with_actions(
        ChecksAction(label=label, description=description, identifier=identifier)
        for label, description, identifier in args.action
    )
    return builder.build()


def main(
    argv: Sequence[str] | None = None,
    publisher: ChecksPublisher | None = None,
) -> int:
    """Run the CLI, returning the process exit code."""
    args = build_argparser().parse_args(argv)
    logging.basicConfig(level=args.log_level)

    try:
        details = details_from_args(args)
    except (ChecksError, ValidationError) as err:
        logging.fatal("[checks-api] Invalid check run, aborting: %s", err)
        return 1
    except OSError as err:
        logging.fatal("[checks-api] Cannot read annotations file, aborting: %s", err)
        return 1

    sys.stdout.write(details.model_dump_json(indent=2) + "\n")
    (publisher or LoggingChecksPublisher()).publish(details)
    return 0


if __name__ == "__main__":
    sys.exit(main())
