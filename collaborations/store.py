from typing import ContextManager, Iterator, Protocol
from django.db import DatabaseError, transaction
from .errors import WriteFailed
from .models import Employee, Project, EmployeeProject
from .schemas import AssignmentRecord


class AssignmentStore(Protocol):
    """Persistence operations the ingestion pipeline and the analyzer rely on."""

    def atomic(self) -> ContextManager: ...

    def upsert_employee(self, employee_id: int) -> bool: ...

    def upsert_project(self, project_id: int) -> bool: ...

    def upsert_assignment(self, record: AssignmentRecord) -> bool: ...

    def scan_assignments(self) -> Iterator[AssignmentRecord]: ...


class DjangoAssignmentStore:
    """AssignmentStore backed by the Django ORM.

    Upserts return True when a row was created. ``get_or_create`` re-reads
    after an IntegrityError, so two runs racing on one natural key end with a
    single row.
    """

    def atomic(self):
        return transaction.atomic()

    def upsert_employee(self, employee_id: int) -> bool:
        try:
            _, created = Employee.objects.get_or_create(id=employee_id)
        except DatabaseError as e:
            raise WriteFailed(employee_id, f"Could not store employee {employee_id}") from e
        return created

    def upsert_project(self, project_id: int) -> bool:
        try:
            _, created = Project.objects.get_or_create(id=project_id)
        except DatabaseError as e:
            raise WriteFailed(project_id, f"Could not store project {project_id}") from e
        return created

    def upsert_assignment(self, record: AssignmentRecord) -> bool:
        try:
            _, created = EmployeeProject.objects.get_or_create(
                employee_id=record.employee_id,
                project_id=record.project_id,
                date_from=record.date_from,
                date_to=record.date_to,
            )
        except DatabaseError as e:
            raise WriteFailed(record) from e
        return created

    def scan_assignments(self) -> Iterator[AssignmentRecord]:
        """Yield every stored assignment in insertion order."""
        rows = EmployeeProject.objects.order_by("id").values_list(
            "employee_id", "project_id", "date_from", "date_to"
        )
        for employee_id, project_id, date_from, date_to in rows.iterator():
            yield AssignmentRecord(
                employee_id=employee_id,
                project_id=project_id,
                date_from=date_from,
                date_to=date_to,
            )
