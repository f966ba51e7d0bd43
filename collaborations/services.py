import codecs
import csv
import enum
import logging
from collections import defaultdict
from datetime import date, datetime
from itertools import combinations, zip_longest
from typing import Callable, Iterable, NamedTuple
from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from .errors import RowRejected, StreamReadFailed, WriteFailed
from .schemas import AssignmentRecord, BatchResult, LongestCollaborationSchema, UploadSummarySchema
from .store import AssignmentStore

logger = logging.getLogger(__name__)

# Fixed column order of the import file; the header line itself is skipped.
COLUMNS = ("EmpID", "ProjectID", "DateFrom", "DateTo")

# DateTo values meaning "still assigned".
OPEN_ENDED_MARKERS = {"", "undefined", "null"}

# Tried after ISO 8601. Day-first and month-first slash dates are ambiguous and left out.
DATE_FORMATS = (
    "%Y/%m/%d",
    "%Y.%m.%d",
    "%d.%m.%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
)

MAX_EXTERNAL_ID = 2**63 - 1

DEFAULT_CHUNK_SIZE = 50

# Failures of the byte stream itself, as opposed to a bad row.
STREAM_READ_ERRORS = (OSError, UnicodeDecodeError, csv.Error)


def parse_calendar_date(value: str) -> date | None:
    """Parse a date in any of the accepted formats, None when none matches."""
    try:
        parsed = parse_date(value)
        if parsed is None:
            moment = parse_datetime(value)
            parsed = moment.date() if moment else None
    except ValueError:
        # Well formed but not a real day, e.g. 2013-02-30
        return None
    if parsed is not None:
        return parsed

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            pass
    return None


class RecordValidator:
    """Turns one raw CSV row into an AssignmentRecord or raises RowRejected."""

    def __init__(self, today: date):
        # Shared by every open-ended row of one run
        self.today = today

    def validate(self, row: dict) -> AssignmentRecord:
        emp_id, project_id, date_from, date_to = (
            (row.get(column) or "").strip() for column in COLUMNS
        )

        if not emp_id or not project_id or not date_from:
            raise RowRejected(RowRejected.MISSING_FIELD, row)

        employee_id = self._parse_id(emp_id, row)
        project_id = self._parse_id(project_id, row)

        parsed_from = parse_calendar_date(date_from)
        if parsed_from is None:
            raise RowRejected(RowRejected.INVALID_DATE, row)

        if date_to.lower() in OPEN_ENDED_MARKERS:
            parsed_to = self.today
        else:
            parsed_to = parse_calendar_date(date_to)
            if parsed_to is None:
                raise RowRejected(RowRejected.INVALID_DATE, row)

        return AssignmentRecord(
            employee_id=employee_id,
            project_id=project_id,
            date_from=parsed_from,
            date_to=parsed_to,
        )

    @staticmethod
    def _parse_id(value: str, row: dict) -> int:
        if not (value.isascii() and value.isdigit()):
            raise RowRejected(RowRejected.MISSING_FIELD, row)
        parsed = int(value)
        if not 0 < parsed <= MAX_EXTERNAL_ID:
            raise RowRejected(RowRejected.MISSING_FIELD, row)
        return parsed


class RowSource:
    """
    Pull-based reader over a CSV byte stream.

    Yields one dict per data row keyed by COLUMNS; short rows are padded with
    None and extra columns are dropped. Empty lines are skipped; a row of
    blank fields is passed on for the validator to reject. The consumer pauses
    the source while it flushes and nothing may be read until resume().
    """

    def __init__(self, stream: Iterable[bytes], encoding: str = "utf-8-sig"):
        self._reader = csv.reader(codecs.iterdecode(stream, encoding))
        self._header_skipped = False
        self.paused = False

    def pause(self):
        self.paused = True

    def resume(self):
        self.paused = False

    def __iter__(self):
        return self

    def __next__(self) -> dict:
        if self.paused:
            raise RuntimeError("Row source read while paused")

        if not self._header_skipped:
            self._header_skipped = True
            next(self._reader)

        values = next(self._reader)
        while values == []:
            values = next(self._reader)
        return dict(zip_longest(COLUMNS, values[:len(COLUMNS)]))


class ChunkBatcher:
    """
    Buffers accepted records and flushes them in fixed-size chunks.

    A full buffer pauses the source, flushes synchronously and resumes the
    source afterwards, whether or not the flush raised. Memory stays bounded by
    ``capacity`` records and only one flush is ever in flight.
    """

    def __init__(self, capacity: int, flush: Callable[[list[AssignmentRecord]], BatchResult], source: RowSource | None = None):
        if capacity < 1:
            raise ValueError("Chunk capacity must be at least 1")
        self.capacity = capacity
        self.flush = flush
        self.source = source
        self.records: list[AssignmentRecord] = []
        self.flush_count = 0

    def add(self, record: AssignmentRecord) -> BatchResult | None:
        """Buffer a record, flushing when the buffer reaches capacity."""
        self.records.append(record)
        if len(self.records) < self.capacity:
            return None

        if self.source is not None:
            self.source.pause()
        try:
            return self._flush()
        finally:
            if self.source is not None:
                self.source.resume()

    def drain(self) -> BatchResult | None:
        """Flush whatever is left at end of input."""
        if not self.records:
            return None
        return self._flush()

    def _flush(self) -> BatchResult:
        batch, self.records = self.records, []
        self.flush_count += 1
        return self.flush(batch)


class AssignmentWriter:
    """Idempotently persists batches of assignment records."""

    def __init__(self, store: AssignmentStore):
        self.store = store

    def write_batch(self, records: list[AssignmentRecord]) -> BatchResult:
        """
        Store each record in batch order: employee, project, then the
        assignment keyed by its natural key. Every record gets its own
        savepoint; a failed record is logged and counted and the rest of the
        batch carries on.
        """
        logger.info("Processing chunk of %d rows", len(records))
        result = BatchResult()

        for record in records:
            try:
                with self.store.atomic():
                    self.store.upsert_employee(record.employee_id)
                    self.store.upsert_project(record.project_id)
                    self.store.upsert_assignment(record)
            except (WriteFailed, DatabaseError) as e:
                result.failed += 1
                logger.warning("Could not store %r: %s", record, e)
                continue
            except Exception:
                # Any store failure stays local to its record
                result.failed += 1
                logger.exception("Unexpected error storing %r", record)
                continue
            result.written += 1

        logger.info("Chunk processed: %d written, %d failed", result.written, result.failed)
        return result


class IngestionState(enum.Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    FLUSHING = "flushing"
    DRAINING = "draining"
    DONE = "done"
    FAILED = "failed"


class IngestionCoordinator:
    """
    Streams a CSV upload through validation, batching and the writer.

    Bad rows are counted and skipped. A failure of the stream itself ends the
    run with StreamReadFailed; chunks flushed before that stay stored.
    """

    def __init__(self, store: AssignmentStore, chunk_size: int | None = None, today: date | None = None):
        self.writer = AssignmentWriter(store)
        self.chunk_size = chunk_size or getattr(settings, "COLLABORATIONS_CHUNK_SIZE", DEFAULT_CHUNK_SIZE)
        self.today = today
        self.state = IngestionState.IDLE
        self.flush_count = 0

    def ingest(self, stream: Iterable[bytes]) -> UploadSummarySchema:
        summary = UploadSummarySchema()
        validator = RecordValidator(self.today or timezone.localdate())
        source = RowSource(stream)
        batcher = ChunkBatcher(self.chunk_size, lambda batch: self._write(batch, summary), source)

        self.state = IngestionState.STREAMING
        while True:
            try:
                row = next(source)
            except StopIteration:
                break
            except STREAM_READ_ERRORS as e:
                self.state = IngestionState.FAILED
                self.flush_count = batcher.flush_count
                summary.message = StreamReadFailed.__doc__
                logger.error(
                    "Stream error after %d rows (%d rejected): %s",
                    summary.processed_rows, summary.rows_with_error, e,
                )
                raise StreamReadFailed(summary, f"Error reading file: {e}") from e

            try:
                record = validator.validate(row)
            except RowRejected as e:
                summary.rows_with_error += 1
                logger.debug("Skipping row with %s: %r", e.kind, e.row)
                continue

            summary.processed_rows += 1
            batcher.add(record)

        self.state = IngestionState.DRAINING
        batcher.drain()
        self.flush_count = batcher.flush_count
        self.state = IngestionState.DONE

        logger.info(
            "CSV processing completed: %d rows processed, %d rejected, %d write errors",
            summary.processed_rows, summary.rows_with_error, summary.write_errors,
        )
        return summary

    def _write(self, batch: list[AssignmentRecord], summary: UploadSummarySchema) -> BatchResult:
        previous = self.state
        if previous is IngestionState.STREAMING:
            self.state = IngestionState.FLUSHING
        try:
            result = self.writer.write_batch(batch)
        finally:
            self.state = previous
        summary.write_errors += result.failed
        return result


class CollaborationPair(NamedTuple):
    """Two employees in canonical (low, high) order."""
    low: int
    high: int

    @classmethod
    def of(cls, first: int, second: int) -> "CollaborationPair":
        return cls(min(first, second), max(first, second))


def overlap_days(first: AssignmentRecord, second: AssignmentRecord) -> int:
    """Days both periods share, counting both ends; 0 when disjoint."""
    start = max(first.date_from, second.date_from)
    end = min(first.date_to, second.date_to)
    if start > end:
        return 0
    return (end - start).days + 1


class CollaborationAnalyzer:
    """Service class for the longest collaboration query."""

    def __init__(self, store: AssignmentStore):
        self.store = store

    def group_by_project(self) -> dict[int, list[AssignmentRecord]]:
        """Group every stored assignment by project, keeping scan order."""
        projects: defaultdict[int, list[AssignmentRecord]] = defaultdict(list)
        for record in self.store.scan_assignments():
            projects[record.project_id].append(record)
        return projects

    def collaboration_totals(self) -> dict[CollaborationPair, int]:
        """
        Total overlap days per employee pair, summed over every shared project.

        Pairs appear in the order they were first reached. Two overlapping
        periods of one employee on a project count as a pair with itself.
        """
        totals: dict[CollaborationPair, int] = {}

        for records in self.group_by_project().values():
            for first, second in combinations(records, 2):
                days = overlap_days(first, second)
                if not days:
                    continue
                pair = CollaborationPair.of(first.employee_id, second.employee_id)
                totals[pair] = totals.get(pair, 0) + days

        return totals

    def find_longest_collaboration(self) -> LongestCollaborationSchema:
        """Pair with the most shared days; all zeros when nobody overlapped."""
        best_pair = CollaborationPair(0, 0)
        best_days = 0

        # Strict comparison: on a tie the earlier pair wins
        for pair, days in self.collaboration_totals().items():
            if days > best_days:
                best_pair, best_days = pair, days

        return LongestCollaborationSchema(
            emp1_id=best_pair.low,
            emp2_id=best_pair.high,
            total_days=best_days,
        )
