import io
import tempfile
from datetime import date
from pathlib import Path
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import CommandError, call_command
from django.test import SimpleTestCase, TestCase, override_settings
from django.test.client import Client
from .errors import RowRejected, StreamReadFailed, WriteFailed
from .models import Employee, Project, EmployeeProject
from .schemas import AssignmentRecord, BatchResult
from .services import (
    AssignmentWriter, ChunkBatcher, CollaborationAnalyzer, CollaborationPair,
    IngestionCoordinator, IngestionState, RecordValidator, RowSource, overlap_days,
)
from .store import DjangoAssignmentStore

HEADER = "EmpID,ProjectID,DateFrom,DateTo"


def csv_stream(*rows, header=HEADER):
    """Build an in-memory CSV byte stream with a header line."""
    return io.BytesIO("\n".join([header, *rows]).encode("utf-8"))


def record(employee_id, project_id, date_from, date_to):
    return AssignmentRecord(
        employee_id=employee_id,
        project_id=project_id,
        date_from=date.fromisoformat(date_from),
        date_to=date.fromisoformat(date_to),
    )


class ListStore:
    """Read-only store over a fixed list of records."""

    def __init__(self, records):
        self.records = records

    def scan_assignments(self):
        return iter(self.records)


class BrokenStream:
    """Byte stream that fails after yielding the given lines."""

    def __init__(self, lines, error):
        self.lines = lines
        self.error = error

    def __iter__(self):
        for line in self.lines:
            yield line
        raise self.error


class RecordValidatorTest(SimpleTestCase):
    """Test conversion of raw rows into assignment records."""

    def setUp(self):
        self.today = date(2020, 1, 1)
        self.validator = RecordValidator(self.today)

    def row(self, emp="143", project="12", date_from="2013-11-01", date_to="2014-01-05"):
        return {"EmpID": emp, "ProjectID": project, "DateFrom": date_from, "DateTo": date_to}

    def assertRejected(self, row, kind):
        with self.assertRaises(RowRejected) as ctx:
            self.validator.validate(row)
        self.assertEqual(ctx.exception.kind, kind)

    def test_valid_row_is_trimmed_and_parsed(self):
        result = self.validator.validate(self.row(" 143 ", "12 ", " 2013-11-01", "2014-01-05 "))

        self.assertEqual(result.employee_id, 143)
        self.assertEqual(result.project_id, 12)
        self.assertEqual(result.date_from, date(2013, 11, 1))
        self.assertEqual(result.date_to, date(2014, 1, 5))

    def test_open_ended_date_to_resolves_to_today(self):
        for value in ("", "   ", "undefined", "NULL", None):
            result = self.validator.validate(self.row(date_to=value))
            self.assertEqual(result.date_to, self.today, value)

    def test_missing_fields(self):
        self.assertRejected(self.row(emp=""), RowRejected.MISSING_FIELD)
        self.assertRejected(self.row(project="  "), RowRejected.MISSING_FIELD)
        self.assertRejected(self.row(date_from=None), RowRejected.MISSING_FIELD)
        self.assertRejected({"EmpID": "1", "ProjectID": "2"}, RowRejected.MISSING_FIELD)

    def test_unparseable_ids_count_as_missing(self):
        for value in ("abc", "-4", "0", "1.5", "2e3", "99999999999999999999"):
            self.assertRejected(self.row(emp=value), RowRejected.MISSING_FIELD)
        self.assertRejected(self.row(project="x12"), RowRejected.MISSING_FIELD)

    def test_invalid_dates(self):
        self.assertRejected(self.row(date_from="not a date"), RowRejected.INVALID_DATE)
        self.assertRejected(self.row(date_from="2013-02-30"), RowRejected.INVALID_DATE)
        self.assertRejected(self.row(date_to="someday"), RowRejected.INVALID_DATE)
        # Day and month order cannot be told apart
        self.assertRejected(self.row(date_from="01/02/2013"), RowRejected.INVALID_DATE)

    def test_accepted_date_formats(self):
        for value in (
            "2013-11-01",
            "2013-11-01T08:30:00",
            "2013/11/01",
            "2013.11.01",
            "01.11.2013",
            "1 Nov 2013",
            "1 November 2013",
            "Nov 1, 2013",
            "November 1, 2013",
        ):
            result = self.validator.validate(self.row(date_from=value))
            self.assertEqual(result.date_from, date(2013, 11, 1), value)

    def test_inverted_range_is_accepted(self):
        result = self.validator.validate(self.row(date_from="2014-01-05", date_to="2013-11-01"))
        self.assertGreater(result.date_from, result.date_to)


class RowSourceTest(SimpleTestCase):
    """Test the pausable CSV row reader."""

    def test_skips_header_and_empty_lines(self):
        source = RowSource(csv_stream("1,2,2020-01-01,2020-02-01", "", ",,,", " , ", "3,4,2020-01-01"))
        rows = list(source)

        self.assertEqual(rows, [
            {"EmpID": "1", "ProjectID": "2", "DateFrom": "2020-01-01", "DateTo": "2020-02-01"},
            {"EmpID": "", "ProjectID": "", "DateFrom": "", "DateTo": ""},
            {"EmpID": " ", "ProjectID": " ", "DateFrom": None, "DateTo": None},
            {"EmpID": "3", "ProjectID": "4", "DateFrom": "2020-01-01", "DateTo": None},
        ])

    def test_byte_order_mark_and_extra_columns(self):
        stream = io.BytesIO(("\ufeff" + HEADER + ",Note\r\n1,2,2020-01-01,2020-02-01,x\r\n").encode("utf-8"))
        self.assertEqual(list(RowSource(stream))[0]["DateTo"], "2020-02-01")

    def test_empty_stream(self):
        self.assertEqual(list(RowSource(io.BytesIO(b""))), [])

    def test_reading_while_paused_is_an_error(self):
        source = RowSource(csv_stream("1,2,2020-01-01,2020-02-01"))
        source.pause()
        with self.assertRaises(RuntimeError):
            next(source)
        source.resume()
        self.assertEqual(next(source)["EmpID"], "1")


class ChunkBatcherTest(SimpleTestCase):
    """Test chunking and the pause / flush / resume protocol."""

    def setUp(self):
        self.source = RowSource(io.BytesIO(b""))
        self.events = []

        original_pause, original_resume = self.source.pause, self.source.resume

        def pause():
            self.events.append("pause")
            original_pause()

        def resume():
            self.events.append("resume")
            original_resume()

        self.source.pause = pause
        self.source.resume = resume

    def flush(self, batch):
        self.events.append(("flush", len(batch), self.source.paused))
        return BatchResult(written=len(batch))

    def test_exact_multiple_of_capacity_flushes_twice(self):
        batcher = ChunkBatcher(50, self.flush, self.source)
        for i in range(100):
            batcher.add(record(i + 1, 1, "2020-01-01", "2020-01-31"))

        self.assertIsNone(batcher.drain())
        self.assertEqual(batcher.flush_count, 2)
        self.assertEqual(self.events, [
            "pause", ("flush", 50, True), "resume",
            "pause", ("flush", 50, True), "resume",
        ])

    def test_partial_chunk_flushed_on_drain(self):
        batcher = ChunkBatcher(3, self.flush, self.source)
        for i in range(4):
            batcher.add(record(i + 1, 1, "2020-01-01", "2020-01-31"))

        result = batcher.drain()

        self.assertEqual(result.written, 1)
        self.assertEqual(batcher.flush_count, 2)
        self.assertEqual(self.events[-1], ("flush", 1, False))
        self.assertEqual(batcher.records, [])

    def test_resumes_after_failed_flush(self):
        def failing_flush(batch):
            raise RuntimeError("boom")

        batcher = ChunkBatcher(1, failing_flush, self.source)
        with self.assertRaises(RuntimeError):
            batcher.add(record(1, 1, "2020-01-01", "2020-01-31"))

        self.assertEqual(self.events, ["pause", "resume"])
        self.assertFalse(self.source.paused)
        self.assertEqual(batcher.records, [])

    def test_capacity_must_be_positive(self):
        with self.assertRaises(ValueError):
            ChunkBatcher(0, self.flush)


class FailingStore(DjangoAssignmentStore):
    """Store whose assignment upsert fails for one employee."""

    def __init__(self, failing_employee):
        self.failing_employee = failing_employee

    def upsert_assignment(self, record):
        if record.employee_id == self.failing_employee:
            raise WriteFailed(record)
        return super().upsert_assignment(record)


class BrokenEmployeeStore(DjangoAssignmentStore):
    """Store whose employee upsert raises a non-database error for one employee."""

    def __init__(self, failing_employee):
        self.failing_employee = failing_employee

    def upsert_employee(self, employee_id):
        if employee_id == self.failing_employee:
            raise RuntimeError("store unavailable")
        return super().upsert_employee(employee_id)


class AssignmentWriterTest(TestCase):
    """Test idempotent persistence of record batches."""

    def setUp(self):
        self.batch = [
            record(1, 10, "2020-01-01", "2020-01-31"),
            record(2, 10, "2020-01-15", "2020-02-15"),
            record(1, 11, "2020-03-01", "2020-03-31"),
        ]

    def test_creates_employees_projects_and_assignments(self):
        result = AssignmentWriter(DjangoAssignmentStore()).write_batch(self.batch)

        self.assertEqual(result.written, 3)
        self.assertEqual(result.failed, 0)
        self.assertEqual(sorted(Employee.objects.values_list("id", flat=True)), [1, 2])
        self.assertEqual(sorted(Project.objects.values_list("id", flat=True)), [10, 11])
        self.assertEqual(EmployeeProject.objects.count(), 3)

    def test_rewriting_a_batch_adds_nothing(self):
        writer = AssignmentWriter(DjangoAssignmentStore())
        writer.write_batch(self.batch)
        result = writer.write_batch(self.batch)

        self.assertEqual(result.failed, 0)
        self.assertEqual(EmployeeProject.objects.count(), 3)
        self.assertEqual(Employee.objects.count(), 2)

    def test_failed_record_does_not_stop_the_batch(self):
        result = AssignmentWriter(FailingStore(failing_employee=2)).write_batch(self.batch)

        self.assertEqual(result.written, 2)
        self.assertEqual(result.failed, 1)
        self.assertEqual(EmployeeProject.objects.count(), 2)
        # The failed record's savepoint is rolled back as a whole
        self.assertFalse(Employee.objects.filter(id=2).exists())

    def test_unexpected_error_does_not_stop_the_batch(self):
        result = AssignmentWriter(BrokenEmployeeStore(failing_employee=2)).write_batch(self.batch)

        self.assertEqual(result.written, 2)
        self.assertEqual(result.failed, 1)
        self.assertEqual(EmployeeProject.objects.count(), 2)


class IngestionCoordinatorTest(TestCase):
    """Test the streaming import from CSV bytes to stored assignments."""

    def setUp(self):
        self.today = date(2020, 1, 1)

    def coordinator(self, chunk_size=50):
        return IngestionCoordinator(DjangoAssignmentStore(), chunk_size=chunk_size, today=self.today)

    def test_counts_processed_and_rejected_rows(self):
        coordinator = self.coordinator()
        summary = coordinator.ingest(csv_stream(
            "143,12,2013-11-01,2014-01-05",
            "218,10,2011-04-16,",
            ",10,2011-04-16,2012-01-01",
            "abc,10,2011-04-16,2012-01-01",
            "143,10,bad date,2012-01-01",
            "148,12,2012-01-01,2013-12-01",
        ))

        self.assertEqual(summary.processed_rows, 3)
        self.assertEqual(summary.rows_with_error, 3)
        self.assertEqual(summary.write_errors, 0)
        self.assertEqual(summary.message, "CSV processing completed")
        self.assertEqual(coordinator.state, IngestionState.DONE)
        self.assertEqual(EmployeeProject.objects.count(), 3)
        self.assertTrue(EmployeeProject.objects.filter(employee_id=218, date_to=self.today).exists())

    def test_all_rows_rejected_still_succeeds(self):
        summary = self.coordinator().ingest(csv_stream("x,y,z,w", ",,,"))

        self.assertEqual(summary.processed_rows, 0)
        self.assertEqual(summary.rows_with_error, 2)
        self.assertEqual(EmployeeProject.objects.count(), 0)

    def test_blank_field_rows_are_counted_as_errors(self):
        summary = self.coordinator().ingest(csv_stream(",,,", " , , , ", "", "1,1,2020-01-01,2020-01-02"))

        self.assertEqual(summary.processed_rows, 1)
        self.assertEqual(summary.rows_with_error, 2)

    def test_unexpected_store_error_is_counted(self):
        coordinator = IngestionCoordinator(BrokenEmployeeStore(failing_employee=2), chunk_size=2, today=self.today)

        summary = coordinator.ingest(csv_stream(
            "1,1,2020-01-01,2020-01-31",
            "2,1,2020-01-01,2020-01-31",
            "3,1,2020-01-01,2020-01-31",
        ))

        self.assertEqual(coordinator.state, IngestionState.DONE)
        self.assertEqual(summary.processed_rows, 3)
        self.assertEqual(summary.write_errors, 1)
        self.assertEqual(
            sorted(EmployeeProject.objects.values_list("employee_id", flat=True)), [1, 3]
        )

    def test_two_full_chunks_flush_exactly_twice(self):
        rows = [f"{i},1,2020-01-01,2020-01-31" for i in range(1, 101)]
        coordinator = self.coordinator(chunk_size=50)

        summary = coordinator.ingest(csv_stream(*rows))

        self.assertEqual(summary.processed_rows, 100)
        self.assertEqual(coordinator.flush_count, 2)
        self.assertEqual(EmployeeProject.objects.count(), 100)

    def test_reimport_is_idempotent(self):
        rows = (
            "1,1,2019-01-01,2019-01-31",
            "2,1,2019-01-10,undefined",
            "2,1,2019-01-10,undefined",
            "3,2,2019-06-01,2019-12-31",
        )
        analyzer = CollaborationAnalyzer(DjangoAssignmentStore())

        first = self.coordinator(chunk_size=2).ingest(csv_stream(*rows))
        first_result = analyzer.find_longest_collaboration()
        second = self.coordinator(chunk_size=2).ingest(csv_stream(*rows))

        self.assertEqual(first.model_dump(), second.model_dump())
        self.assertEqual(EmployeeProject.objects.count(), 3)
        self.assertEqual(analyzer.find_longest_collaboration(), first_result)
        self.assertEqual(first_result.total_days, 22)

    def test_stream_failure_keeps_flushed_chunks(self):
        lines = [f"{HEADER}\n".encode()] + [f"{i},1,2020-01-01,2020-01-31\n".encode() for i in range(1, 6)]
        coordinator = self.coordinator(chunk_size=2)

        with self.assertRaises(StreamReadFailed) as ctx:
            coordinator.ingest(BrokenStream(lines, OSError("connection reset")))

        self.assertEqual(coordinator.state, IngestionState.FAILED)
        self.assertEqual(ctx.exception.summary.processed_rows, 5)
        self.assertEqual(ctx.exception.summary.message, "Error reading file")
        self.assertEqual(EmployeeProject.objects.count(), 4)

    def test_undecodable_bytes_fail_the_stream(self):
        stream = io.BytesIO(f"{HEADER}\n1,1,2020-01-01,2020-01-31\n".encode() + b"\xff\xfe\xfa\n")

        with self.assertRaises(StreamReadFailed) as ctx:
            self.coordinator().ingest(stream)

        self.assertEqual(ctx.exception.summary.processed_rows, 1)


class CollaborationAnalyzerTest(SimpleTestCase):
    """Test the pairwise overlap computation."""

    def longest(self, *records):
        result = CollaborationAnalyzer(ListStore(list(records))).find_longest_collaboration()
        return result.emp1_id, result.emp2_id, result.total_days

    def test_reference_scenario(self):
        today = "2020-01-01"
        self.assertEqual(self.longest(
            record(143, 12, "2013-11-01", "2014-01-05"),
            record(218, 10, "2011-04-16", today),
            record(143, 10, "2009-01-01", "2011-04-27"),
            record(148, 12, "2012-01-01", "2013-12-01"),
        ), (143, 148, 31))

    def test_single_shared_day_counts_as_one(self):
        self.assertEqual(self.longest(
            record(1, 1, "2020-01-01", "2020-01-10"),
            record(2, 1, "2020-01-10", "2020-01-20"),
        ), (1, 2, 1))

    def test_pair_is_canonically_ordered(self):
        self.assertEqual(self.longest(
            record(5, 1, "2022-01-01", "2022-06-30"),
            record(2, 1, "2022-03-01", "2022-06-30"),
        ), (2, 5, 122))

    def test_overlaps_add_up_across_projects(self):
        self.assertEqual(self.longest(
            record(1, 1, "2020-01-01", "2020-01-10"),
            record(2, 1, "2020-01-01", "2020-01-10"),
            record(3, 3, "2020-01-01", "2020-01-12"),
            record(4, 3, "2020-01-01", "2020-01-12"),
            record(2, 2, "2020-05-01", "2020-05-05"),
            record(1, 2, "2020-05-01", "2020-05-31"),
        ), (1, 2, 15))

    def test_first_pair_wins_a_tie(self):
        first = [record(3, 1, "2020-01-01", "2020-01-10"), record(4, 1, "2020-01-01", "2020-01-10")]
        second = [record(1, 2, "2020-01-01", "2020-01-10"), record(2, 2, "2020-01-01", "2020-01-10")]

        self.assertEqual(self.longest(*first, *second), (3, 4, 10))
        self.assertEqual(self.longest(*second, *first), (1, 2, 10))

    def test_no_overlap_returns_zeros(self):
        self.assertEqual(self.longest(), (0, 0, 0))
        self.assertEqual(self.longest(record(1, 1, "2020-01-01", "2020-01-10")), (0, 0, 0))
        self.assertEqual(self.longest(
            record(1, 1, "2020-01-01", "2020-01-10"),
            record(2, 1, "2020-01-11", "2020-01-20"),
            record(3, 2, "2020-01-01", "2020-01-10"),
        ), (0, 0, 0))

    def test_inverted_range_never_overlaps(self):
        self.assertEqual(self.longest(
            record(1, 1, "2020-02-01", "2020-01-01"),
            record(2, 1, "2020-01-01", "2020-03-01"),
        ), (0, 0, 0))

    def test_overlapping_periods_of_one_employee_pair_with_itself(self):
        self.assertEqual(self.longest(
            record(7, 1, "2020-01-01", "2020-01-31"),
            record(7, 1, "2020-01-15", "2020-02-15"),
            record(1, 2, "2020-01-01", "2020-01-05"),
            record(2, 2, "2020-01-01", "2020-01-05"),
        ), (7, 7, 17))

    def test_collaboration_totals(self):
        totals = CollaborationAnalyzer(ListStore([
            record(2, 1, "2020-01-01", "2020-01-10"),
            record(1, 1, "2020-01-06", "2020-01-20"),
            record(3, 1, "2020-01-20", "2020-01-25"),
        ])).collaboration_totals()

        self.assertEqual(totals, {CollaborationPair(1, 2): 5, CollaborationPair(1, 3): 1})

    def test_overlap_days(self):
        a = record(1, 1, "2020-02-27", "2020-03-02")
        self.assertEqual(overlap_days(a, record(2, 1, "2020-01-01", "2020-12-31")), 5)
        self.assertEqual(overlap_days(a, record(2, 1, "2020-03-03", "2020-12-31")), 0)


class AnalyticsAPITestBase(TestCase):
    """Base test class with upload helpers."""

    def setUp(self):
        self.client = Client()

    def upload(self, content, name="assignments.csv", content_type="text/csv"):
        if isinstance(content, str):
            content = content.encode("utf-8")
        upload = SimpleUploadedFile(name, content, content_type=content_type)
        return self.client.post("/api/v1/analytics/upload", {"file": upload})


class AnalyticsUploadAPITest(AnalyticsAPITestBase):
    """Test the CSV upload endpoint."""

    def test_upload_returns_summary(self):
        response = self.upload(f"{HEADER}\n1,1,2022-01-01,2022-06-30\n2,1,2022-03-01,2022-06-30\n,1,,\n")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            "processedRows": 2,
            "rowsWithError": 1,
            "writeErrors": 0,
            "message": "CSV processing completed",
        })
        self.assertEqual(EmployeeProject.objects.count(), 2)

    def test_csv_extension_with_generic_content_type_is_accepted(self):
        response = self.upload(f"{HEADER}\n1,1,2022-01-01,2022-06-30\n", content_type="application/octet-stream")
        self.assertEqual(response.status_code, 200)

    def test_rejects_non_csv_file(self):
        response = self.upload(f"{HEADER}\n1,1,2022-01-01,2022-06-30\n", name="test.txt", content_type="text/plain")

        self.assertEqual(response.status_code, 400)
        data = response.json()
        self.assertFalse(data["success"])
        self.assertEqual(data["error"], "unsupported_file_type")
        self.assertEqual(EmployeeProject.objects.count(), 0)
        self.assertEqual(Employee.objects.count(), 0)

    @override_settings(COLLABORATIONS_MAX_UPLOAD_SIZE=16)
    def test_rejects_oversized_file(self):
        response = self.upload(f"{HEADER}\n1,1,2022-01-01,2022-06-30\n")

        self.assertEqual(response.status_code, 413)
        self.assertEqual(response.json()["error"], "upload_too_large")
        self.assertEqual(EmployeeProject.objects.count(), 0)

    def test_unreadable_file_reports_partial_summary(self):
        response = self.upload(f"{HEADER}\n1,1,2022-01-01,2022-06-30\n".encode() + b"\xff\xfe\xfa\n")

        self.assertEqual(response.status_code, 422)
        data = response.json()
        self.assertEqual(data["error"], "stream_read_failed")
        self.assertEqual(data["processedRows"], 1)
        self.assertEqual(data["message"], "Error reading file")

    def test_missing_file(self):
        response = self.client.post("/api/v1/analytics/upload", {})
        self.assertEqual(response.status_code, 422)


class LongestCollaborationAPITest(AnalyticsAPITestBase):
    """Test the longest collaboration endpoint."""

    def test_longest_collaboration(self):
        self.upload(f"{HEADER}\n1,1,2022-01-01,2022-06-30\n2,1,2022-03-01,2022-06-30\n")

        response = self.client.get("/api/v1/analytics/longest-collaboration")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"emp1Id": 1, "emp2Id": 2, "totalDays": 122})

    def test_no_collaborations(self):
        self.upload(f"{HEADER}\n1,1,2022-01-01,2022-01-31\n2,1,2022-02-01,2022-02-28\n")

        response = self.client.get("/api/v1/analytics/longest-collaboration")

        self.assertEqual(response.json(), {"emp1Id": 0, "emp2Id": 0, "totalDays": 0})

    def test_upload_twice_does_not_double_count(self):
        content = f"{HEADER}\n1,1,2022-01-01,2022-06-30\n2,1,2022-03-01,2022-06-30\n"
        self.upload(content)
        second = self.upload(content)

        self.assertEqual(second.json()["processedRows"], 2)
        response = self.client.get("/api/v1/analytics/longest-collaboration")
        self.assertEqual(response.json()["totalDays"], 122)


class ManagementCommandTest(TestCase):
    """Test the import and report commands."""

    def test_import_then_report(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "assignments.csv"
            path.write_text(
                f"{HEADER}\n143,12,2013-11-01,2014-01-05\n148,12,2012-01-01,2013-12-01\nbad,row,,\n",
                encoding="utf-8",
            )
            out = io.StringIO()
            call_command("import_assignments", str(path), "--chunk-size", "1", stdout=out)

        self.assertIn("Processed 2 rows, 1 rejected, 0 write errors", out.getvalue())

        out = io.StringIO()
        call_command("longest_collaboration", stdout=out)
        self.assertIn("143,148,31", out.getvalue())

    def test_report_lists_all_pairs(self):
        writer = AssignmentWriter(DjangoAssignmentStore())
        writer.write_batch([
            record(1, 1, "2020-01-01", "2020-01-10"),
            record(2, 1, "2020-01-01", "2020-01-10"),
            record(3, 1, "2020-01-10", "2020-01-20"),
        ])

        out = io.StringIO()
        call_command("longest_collaboration", "--all", stdout=out)

        self.assertEqual(out.getvalue().splitlines(), ["1,2,10", "1,3,1", "2,3,1"])

    def test_report_without_data(self):
        out = io.StringIO()
        call_command("longest_collaboration", stdout=out)
        self.assertIn("No overlapping assignments found.", out.getvalue())

    def test_import_failure_reports_accepted_rows(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "assignments.csv"
            path.write_bytes(
                f"{HEADER}\n1,1,2020-01-01,2020-01-31\n2,1,2020-01-01,2020-01-31\n".encode() + b"\xff\xfe\xfa\n"
            )
            with self.assertRaises(CommandError) as ctx:
                call_command("import_assignments", str(path), stdout=io.StringIO())

        self.assertIn("2 rows accepted before the failure", str(ctx.exception))
        # Both rows were still buffered, so nothing was stored
        self.assertEqual(EmployeeProject.objects.count(), 0)
