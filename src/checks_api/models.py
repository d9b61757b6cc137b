"""Model representation of check runs, their output, annotations and actions.

All models are frozen pydantic models: once constructed they cannot be changed, and
their sequences are stored as tuples. Use the builders in :mod:`checks_api.builders`
to assemble them step by step.
"""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Self

from pydantic import (
    AfterValidator,
    AnyHttpUrl,
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from checks_api.errors import require_not_none

# Length limits of the checks API for the fields of a single action
MAX_ACTION_LABEL_LENGTH = 20
MAX_ACTION_DESCRIPTION_LENGTH = 40
MAX_ACTION_IDENTIFIER_LENGTH = 20

_any_url_adapter: TypeAdapter[AnyUrl] = TypeAdapter(AnyUrl)
_http_url_adapter: TypeAdapter[AnyHttpUrl] = TypeAdapter(AnyHttpUrl)


def check_not_blank(value: str) -> str:
    """Reject empty or whitespace-only strings, returning the value unchanged."""
    if not value.strip():
        msg = "value must not be blank"
        raise ValueError(msg)
    return value


def check_url(value: str) -> str:
    """Reject strings that are not absolute URLs, returning the value unchanged."""
    try:
        _any_url_adapter.validate_python(value)
    except ValidationError as err:
        msg = f"not a valid URL: {value}"
        raise ValueError(msg) from err
    return value


def check_http_url(value: str) -> str:
    """Reject URLs not using the http or https scheme, returning the value unchanged.

    The URL is only validated, never normalized, so it is kept exactly as given.
    """
    try:
        _http_url_adapter.validate_python(value)
    except ValidationError as err:
        msg = f"details URL must use http or https scheme: {value}"
        raise ValueError(msg) from err
    return value


NonBlankStr = Annotated[str, AfterValidator(check_not_blank)]
UrlStr = Annotated[str, AfterValidator(check_url)]
HttpUrlStr = Annotated[str, AfterValidator(check_http_url)]


class ChecksStatus(StrEnum):
    """The lifecycle stages of a check run."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ChecksConclusion(StrEnum):
    """The terminal outcome of a completed check run.

    ``NONE`` marks a check run that has not been concluded yet.
    """

    NONE = "none"
    SUCCESS = "success"
    FAILURE = "failure"
    NEUTRAL = "neutral"
    CANCELED = "cancelled"
    SKIPPED = "skipped"
    TIMED_OUT = "timed_out"
    ACTION_REQUIRED = "action_required"


class AnnotationLevel(StrEnum):
    """The severity levels permitted for each individual annotation."""

    NOTICE = "notice"
    WARNING = "warning"
    FAILURE = "failure"


class ChecksImage(BaseModel):
    """An image shown in the output of a check run."""

    model_config = ConfigDict(frozen=True)

    alt: NonBlankStr
    image_url: UrlStr


class ChecksAnnotation(BaseModel):
    """A comment pinned to a range of lines (and optionally columns) of one file.

    Columns may only be given when the annotation covers a single line.
    """

    model_config = ConfigDict(frozen=True)

    path: NonBlankStr
    start_line: int = Field(ge=0)
    end_line: int = Field(ge=0)
    annotation_level: AnnotationLevel
    message: str
    title: str | None = None
    raw_details: str | None = None
    start_column: int | None = Field(default=None, ge=0)
    end_column: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_location(self) -> Self:
        if self.start_line > self.end_line:
            msg = (
                f"start line {self.start_line} must not be after "
                f"end line {self.end_line}"
            )
            raise ValueError(msg)
        has_columns = self.start_column is not None or self.end_column is not None
        if has_columns and self.start_line != self.end_line:
            msg = "columns can only be set when start line and end line are the same"
            raise ValueError(msg)
        if (
            self.start_column is not None
            and self.end_column is not None
            and self.start_column > self.end_column
        ):
            msg = "start column must not be after end column"
            raise ValueError(msg)
        return self


class ChecksAction(BaseModel):
    """An action a user can trigger from the check run, e.g. "Re-run"."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(max_length=MAX_ACTION_LABEL_LENGTH)
    description: str = Field(max_length=MAX_ACTION_DESCRIPTION_LENGTH)
    identifier: str = Field(max_length=MAX_ACTION_IDENTIFIER_LENGTH)


class ChecksOutput(BaseModel):
    """The report body of a check run.

    Title and summary are only required to be present, they may be blank.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    summary: str
    text: str | None = None
    annotations: tuple[ChecksAnnotation, ...] = ()
    images: tuple[ChecksImage, ...] = ()

    @classmethod
    def copy_of(cls, output: "ChecksOutput") -> "ChecksOutput":
        """Create a fully independent copy of an output, including its sequences.

        :param output: the output to copy
        :return: a new output equal to, but sharing no state with, the given one
        :raises MissingValueError: if the output is None
        """
        return require_not_none(output, "output").model_copy(deep=True)


class ChecksDetails(BaseModel):
    """The complete state of a check run, as handed to a publisher.

    Instances should be created through
    :class:`checks_api.builders.ChecksDetailsBuilder`, which fills in the timestamps.
    The model itself still refuses any combination of status, conclusion and
    completion time that cannot describe a real check run.
    """

    model_config = ConfigDict(frozen=True)

    name: NonBlankStr
    status: ChecksStatus
    details_url: HttpUrlStr | None = None
    started_at: datetime | None = None
    conclusion: ChecksConclusion = ChecksConclusion.NONE
    completed_at: datetime | None = None
    output: ChecksOutput | None = None
    actions: tuple[ChecksAction, ...] = ()

    @model_validator(mode="after")
    def _check_conclusion(self) -> Self:
        if self.conclusion == ChecksConclusion.NONE:
            if self.status == ChecksStatus.COMPLETED:
                msg = "conclusion must be set when status is completed"
                raise ValueError(msg)
            if self.completed_at is not None:
                msg = "conclusion must be set when completed at is provided"
                raise ValueError(msg)
        elif self.status != ChecksStatus.COMPLETED:
            msg = "status must be completed when a conclusion is set"
            raise ValueError(msg)
        return self
