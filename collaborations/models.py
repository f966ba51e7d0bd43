from django.db import models

class Employee(models.Model):
    # External identifier taken straight from the import file.
    id = models.BigIntegerField(primary_key=True)

class Project(models.Model):
    id = models.BigIntegerField(primary_key=True)

class EmployeeProject(models.Model):
    id        = models.BigAutoField(primary_key=True)
    employee  = models.ForeignKey(
        Employee,
        on_delete=models.PROTECT,
        related_name="assignments"
    )
    project   = models.ForeignKey(
        Project,
        on_delete=models.PROTECT,
        related_name="assignments"
    )
    date_from = models.DateField()
    date_to   = models.DateField()

    class Meta:
        unique_together = ("employee", "project", "date_from", "date_to")
        indexes = [
            models.Index(fields=["project", "date_from"], name="collab_project_from_idx"),
        ]
