"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table and uses relationships where appropriate.
"""

from typing import Optional, List, Set
from datetime import date
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field, Relationship

COURSE_LEVELS = ("Beginner", "Intermediate", "Difficult")


class Course(SQLModel, table=True):
    """A course that can be scheduled inside learning plans.

    Fields:
    - `name`: unique course name
    - `level`: one of `COURSE_LEVELS`
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, nullable=False, unique=True)
    level: str = Field(index=True)


class LearningPlan(SQLModel, table=True):
    """A named, typed grouping of one or more batches.

    The batch ids live in `LearningPlanBatch` rows; `batch_ids` exposes
    them as a set.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    type: str = Field(index=True)
    batches: List['LearningPlanBatch'] = Relationship(
        back_populates='learning_plan',
        sa_relationship_kwargs={'cascade': 'all, delete-orphan', 'lazy': 'selectin'},
    )

    @property
    def batch_ids(self) -> Set[int]:
        return {b.batch_id for b in self.batches}

    def add_batch_ids(self, batch_ids):
        """Attach every id in `batch_ids` the plan does not own yet."""
        owned = self.batch_ids
        for batch_id in sorted(set(batch_ids) - owned):
            self.batches.append(LearningPlanBatch(batch_id=batch_id))


class LearningPlanBatch(SQLModel, table=True):
    """Ownership of one batch by one learning plan.

    `batch_id` is the primary key, so a batch can never be attached to
    two plans.
    """
    batch_id: int = Field(primary_key=True, sa_column_kwargs={'autoincrement': False})
    learning_plan_id: Optional[int] = Field(default=None, foreign_key='learningplan.id', index=True, nullable=False)
    learning_plan: Optional[LearningPlan] = Relationship(back_populates='batches')


class Module(SQLModel, table=True):
    """Assignment of a course and a trainer to a learning plan for a date range."""
    __table_args__ = (
        UniqueConstraint('learning_plan_id', 'course_id', name='uq_module_learning_plan_course'),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    learning_plan_id: int = Field(foreign_key='learningplan.id', index=True)
    course_id: int = Field(foreign_key='course.id', index=True)
    trainer: str = Field(index=True)
    start_date: date
    end_date: date
    batch_id: Optional[int] = None
    course: Optional[Course] = Relationship()
