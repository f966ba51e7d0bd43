import logging
from django.conf import settings
from django.http import HttpRequest
from ninja import File, NinjaAPI, Swagger
from ninja.files import UploadedFile
from .errors import CollaborationError, StreamReadFailed, UnsupportedFileType, UploadTooLarge
from .schemas import ErrorSchema, LongestCollaborationSchema, UploadSummarySchema
from .services import CollaborationAnalyzer, IngestionCoordinator
from .store import DjangoAssignmentStore

logger = logging.getLogger(__name__)

api = NinjaAPI(docs=Swagger(settings={"persistAuthorization": True}))

DEFAULT_MAX_UPLOAD_SIZE = 10 * 1024 * 1024


def error_payload(exc: CollaborationError) -> dict:
    return ErrorSchema(status=exc.status_code, message=exc.message, error=exc.code).model_dump()


@api.exception_handler(StreamReadFailed)
def stream_read_failed(request: HttpRequest, exc: StreamReadFailed):
    payload = error_payload(exc)
    payload.update(exc.summary.model_dump(by_alias=True))
    return api.create_response(request, payload, status=exc.status_code)


@api.exception_handler(CollaborationError)
def collaboration_error(request: HttpRequest, exc: CollaborationError):
    logger.warning("%s %s - %s", exc.status_code, request.path, exc.message)
    return api.create_response(request, error_payload(exc), status=exc.status_code)


def check_upload(file: UploadedFile) -> None:
    """Reject anything that is not a CSV file within the size limit."""
    max_size = getattr(settings, "COLLABORATIONS_MAX_UPLOAD_SIZE", DEFAULT_MAX_UPLOAD_SIZE)
    if file.size is not None and file.size > max_size:
        raise UploadTooLarge(f"File exceeds the {max_size} byte limit")

    content_type = (file.content_type or "").lower()
    name = (file.name or "").lower()
    if "csv" not in content_type and not name.endswith(".csv"):
        raise UnsupportedFileType()


@api.post(
    "/analytics/upload",
    response={200: UploadSummarySchema, 400: ErrorSchema, 413: ErrorSchema},
    by_alias=True,
)
def upload_assignments(request: HttpRequest, file: UploadedFile = File(...)) -> UploadSummarySchema:
    """
    Import employee project assignments from a CSV file.

    Columns, in order: EmpID, ProjectID, DateFrom, DateTo. The first line is a
    header and is skipped. A blank or ``undefined`` DateTo means the
    assignment runs until today. Rows that fail validation are counted in
    ``rowsWithError`` and skipped; importing the same file twice stores
    nothing new.
    """
    check_upload(file)
    coordinator = IngestionCoordinator(DjangoAssignmentStore())
    return coordinator.ingest(file)


@api.get("/analytics/longest-collaboration", response=LongestCollaborationSchema, by_alias=True)
def get_longest_collaboration(request: HttpRequest) -> LongestCollaborationSchema:
    """
    Get the pair of employees who worked together on common projects for the
    most days. Overlaps on different projects add up; both the first and last
    shared day count. All fields are 0 when no two assignments overlap.
    """
    return CollaborationAnalyzer(DjangoAssignmentStore()).find_longest_collaboration()
