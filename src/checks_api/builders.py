"""Builders assembling check run models from values collected one at a time.

Every ``with_*`` method validates its argument right away and returns the builder,
so calls can be chained. Checks depending on several values are done in ``build``.
Builders are not thread-safe, use one builder per thread.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Self, TypeVar

from pydantic import BaseModel, ValidationError

from checks_api.errors import (
    InconsistentStateError,
    InvalidArgumentError,
    require_not_none,
)
from checks_api.models import (
    AnnotationLevel,
    ChecksAction,
    ChecksAnnotation,
    ChecksConclusion,
    ChecksDetails,
    ChecksImage,
    ChecksOutput,
    ChecksStatus,
    check_http_url,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _now() -> datetime:
    """Return the current moment as a timezone-aware local timestamp."""
    return datetime.now().astimezone()


def _copy_each(models: Iterable[ModelT], name: str) -> tuple[ModelT, ...]:
    """Deep copy every model of an iterable into a tuple, preserving the order."""
    require_not_none(models, name)
    return tuple(
        require_not_none(model, f"element of {name}").model_copy(deep=True)
        for model in models
    )


class ChecksAnnotationBuilder:
    """Builder for :class:`ChecksAnnotation`.

    The builder can be reused, e.g. to create several annotations on the same lines
    which only differ in their title.
    """

    def __init__(  # noqa: PLR0913
        self,
        path: str,
        start_line: int,
        end_line: int,
        annotation_level: AnnotationLevel,
        message: str,
    ) -> None:
        """Construct a builder for an annotation on the given lines of a file.

        :param path: the repository-relative path of the annotated file
        :param start_line: the first annotated line
        :param end_line: the last annotated line, not before ``start_line``
        :param annotation_level: the severity of the annotation
        :param message: a short description of the problem
        :raises MissingValueError: if any argument is None
        :raises InvalidArgumentError: if the path is blank or the lines are reversed
        """
        require_not_none(path, "path")
        require_not_none(start_line, "start_line")
        require_not_none(end_line, "end_line")
        if not path.strip():
            msg = "annotation path should not be blank"
            raise InvalidArgumentError(msg)
        if start_line > end_line:
            msg = f"start line {start_line} must not be after end line {end_line}"
            raise InvalidArgumentError(msg)

        self._path = path
        self._start_line = start_line
        self._end_line = end_line
        self._annotation_level = require_not_none(annotation_level, "annotation_level")
        self._message = require_not_none(message, "message")
        self._title: str | None = None
        self._raw_details: str | None = None
        self._start_column: int | None = None
        self._end_column: int | None = None

    def with_title(self, title: str) -> Self:
        """Set a title, shown above the message."""
        self._title = require_not_none(title, "title")
        return self

    def with_raw_details(self, raw_details: str) -> Self:
        """Set further details, shown collapsed below the message."""
        self._raw_details = require_not_none(raw_details, "raw_details")
        return self

    def with_start_column(self, start_column: int) -> Self:
        """Set the first annotated column.

        :raises InvalidArgumentError: if the annotation spans more than one line
        """
        self._check_single_line("start column")
        self._start_column = require_not_none(start_column, "start_column")
        return self

    def with_end_column(self, end_column: int) -> Self:
        """Set the last annotated column.

        :raises InvalidArgumentError: if the annotation spans more than one line
        """
        self._check_single_line("end column")
        self._end_column = require_not_none(end_column, "end_column")
        return self

    def _check_single_line(self, field: str) -> None:
        if self._start_line != self._end_line:
            msg = f"cannot set {field} when start line and end line are not the same"
            raise InvalidArgumentError(msg)

    def build(self) -> ChecksAnnotation:
        """Create a new annotation from the values collected so far.

        :raises InvalidArgumentError: if the values do not form a valid annotation
        """
        try:
            return ChecksAnnotation(
                path=self._path,
                start_line=self._start_line,
                end_line=self._end_line,
                annotation_level=self._annotation_level,
                message=self._message,
                title=self._title,
                raw_details=self._raw_details,
                start_column=self._start_column,
                end_column=self._end_column,
            )
        except ValidationError as err:
            msg = f"invalid annotation for {self._path}: {err}"
            raise InvalidArgumentError(msg) from err


class ChecksOutputBuilder:
    """Builder for :class:`ChecksOutput`."""

    def __init__(self, title: str, summary: str) -> None:
        """Construct a builder with the required title and summary.

        Both may be blank, but not None.

        :raises MissingValueError: if the title or summary is None
        """
        self._title = require_not_none(title, "title")
        self._summary = require_not_none(summary, "summary")
        self._text: str | None = None
        self._annotations: tuple[ChecksAnnotation, ...] = ()
        self._images: tuple[ChecksImage, ...] = ()

    def with_text(self, text: str) -> Self:
        """Set the details text of the output, supports markdown."""
        self._text = require_not_none(text, "text")
        return self

    def with_annotations(self, annotations: Iterable[ChecksAnnotation]) -> Self:
        """Replace the annotations with copies of the given ones, keeping their order.

        :raises MissingValueError: if ``annotations`` or one of its elements is None
        """
        self._annotations = _copy_each(annotations, "annotations")
        return self

    def add_annotation(self, annotation: ChecksAnnotation) -> Self:
        """Append a copy of a single annotation."""
        self._annotations += _copy_each([annotation], "annotation")
        return self

    def with_images(self, images: Iterable[ChecksImage]) -> Self:
        """Replace the images with copies of the given ones, keeping their order.

        :raises MissingValueError: if ``images`` or one of its elements is None
        """
        self._images = _copy_each(images, "images")
        return self

    def add_image(self, image: ChecksImage) -> Self:
        """Append a copy of a single image."""
        self._images += _copy_each([image], "image")
        return self

    def build(self) -> ChecksOutput:
        """Create the output from the values collected so far."""
        return ChecksOutput(
            title=self._title,
            summary=self._summary,
            text=self._text,
            annotations=self._annotations,
            images=self._images,
        )


class ChecksDetailsBuilder:
    """Builder for :class:`ChecksDetails`, enforcing the states a check run may be in.

    A check run that is queued or in progress has no conclusion and no completion
    time. A completed check run always has a conclusion. Missing timestamps are
    filled in with the time ``build`` is called: the start time for check runs
    without conclusion, the completion time for concluded ones.
    """

    def __init__(
        self,
        name: str,
        status: ChecksStatus,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Construct a builder with the given name and status.

        The name identifies the check run towards the checks backend, repeated
        updates of one check run need to use the same name, e.g. "Coverage".

        :param name: the name of the check run
        :param status: the status of the check run, cannot be changed later
        :param clock: source of the current time, optional, defaults to local time
        :raises InvalidArgumentError: if the name is blank
        :raises MissingValueError: if the status is None
        """
        if name is None or not name.strip():
            msg = "check name should not be blank"
            raise InvalidArgumentError(msg)

        self._name = name
        self._status = require_not_none(status, "status")
        self._clock = clock or _now
        self._details_url: str | None = None
        self._started_at: datetime | None = None
        self._conclusion: ChecksConclusion | None = None
        self._completed_at: datetime | None = None
        self._output: ChecksOutput | None = None
        self._actions: tuple[ChecksAction, ...] = ()

    def with_details_url(self, details_url: str) -> Self:
        """Set the URL of a site with the full details of the check run.

        :param details_url: the URL, using the http or https scheme
        :raises MissingValueError: if the URL is None
        :raises InvalidArgumentError: if the URL does not use http or https
        """
        require_not_none(details_url, "details_url")
        try:
            self._details_url = check_http_url(details_url)
        except ValueError as err:
            raise InvalidArgumentError(str(err)) from err
        return self

    def with_started_at(self, started_at: datetime) -> Self:
        """Set the time the check run started.

        If not set for a check run without conclusion, the time of ``build`` is used.
        """
        self._started_at = require_not_none(started_at, "started_at")
        return self

    def with_conclusion(self, conclusion: ChecksConclusion) -> Self:
        """Set the conclusion, only permitted for completed check runs.

        Passing ``ChecksConclusion.NONE`` removes a previously set conclusion.

        :raises InvalidArgumentError: if the status is not completed
        :raises MissingValueError: if the conclusion is None
        """
        if self._status != ChecksStatus.COMPLETED:
            msg = "status must be completed when setting conclusion"
            raise InvalidArgumentError(msg)
        require_not_none(conclusion, "conclusion")
        self._conclusion = None if conclusion == ChecksConclusion.NONE else conclusion
        return self

    def with_completed_at(self, completed_at: datetime) -> Self:
        """Set the time the check run completed.

        If not set for a concluded check run, the time of ``build`` is used.
        """
        self._completed_at = require_not_none(completed_at, "completed_at")
        return self

    def with_output(self, output: ChecksOutput) -> Self:
        """Set the output, storing a copy of it."""
        self._output = ChecksOutput.copy_of(output)
        return self

    def with_actions(self, actions: Iterable[ChecksAction]) -> Self:
        """Replace the actions with copies of the given ones, keeping their order.

        :raises MissingValueError: if ``actions`` or one of its elements is None
        """
        self._actions = _copy_each(actions, "actions")
        return self

    def add_action(self, action: ChecksAction) -> Self:
        """Append a copy of a single action."""
        self._actions += _copy_each([action], "action")
        return self

    def build(self) -> ChecksDetails:
        """Validate the collected values and create the check run details.

        The builder itself is left untouched, so it can be corrected and built again
        after a failure.

        :raises InconsistentStateError: if the check run is completed without a
            conclusion, or has a completion time but no conclusion
        """
        now = self._clock()
        started_at = self._started_at
        completed_at = self._completed_at

        if self._conclusion is None:
            if started_at is None:
                logger.debug("Defaulting start time of check %r to %s", self._name, now)
                started_at = now

            if self._status == ChecksStatus.COMPLETED:
                msg = "conclusion must be set when status is completed"
                raise InconsistentStateError(msg)

            if completed_at is not None:
                msg = "conclusion must be set when completed at is provided"
                raise InconsistentStateError(msg)
        elif completed_at is None:
            logger.debug(
                "Defaulting completion time of check %r to %s",
                self._name,
                now,
            )
            completed_at = now

        return ChecksDetails(
            name=self._name,
            status=self._status,
            details_url=self._details_url,
            started_at=started_at,
            conclusion=self._conclusion or ChecksConclusion.NONE,
            completed_at=completed_at,
            output=self._output,
            actions=self._actions,
        )
