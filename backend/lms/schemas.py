"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable. Fields the services
validate themselves are optional here so a missing value is reported by
the service as an invalid-input error rather than by the framework.
"""

from datetime import date
from pydantic import BaseModel
from typing import List, Optional
from . import models


class CourseIn(BaseModel):
    """Payload for creating a course."""
    name: Optional[str] = None
    level: Optional[str] = None


class CourseOut(BaseModel):
    id: int
    name: str
    level: str

    @classmethod
    def from_course(cls, course: models.Course) -> "CourseOut":
        return cls(id=course.id, name=course.name, level=course.level)


class CourseDTO(BaseModel):
    """Flat projection of a course for listing clients."""
    course_id: int
    course_name: str
    level: str

    @classmethod
    def from_course(cls, course: models.Course) -> "CourseDTO":
        return cls(course_id=course.id, course_name=course.name, level=course.level)


class NameIn(BaseModel):
    """Rename payload shared by courses and learning plans."""
    name: Optional[str] = None


class IdsIn(BaseModel):
    """List of ids for bulk deletes."""
    ids: List[int] = []


class LearningPlanIn(BaseModel):
    """Payload for creating (or merging into) a learning plan."""
    name: Optional[str] = None
    type: Optional[str] = None
    batch_ids: List[int] = []


class LearningPlanOut(BaseModel):
    id: int
    name: str
    type: str
    batch_ids: List[int]

    @classmethod
    def from_plan(cls, plan: models.LearningPlan) -> "LearningPlanOut":
        return cls(id=plan.id, name=plan.name, type=plan.type, batch_ids=sorted(plan.batch_ids))


class ModuleIn(BaseModel):
    """Payload for creating a module."""
    learning_plan_id: Optional[int] = None
    course_id: Optional[int] = None
    trainer: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    batch_id: Optional[int] = None

    def to_model(self) -> models.Module:
        return models.Module(**self.model_dump())


class ModuleOut(BaseModel):
    id: int
    learning_plan_id: int
    course: Optional[CourseOut]
    trainer: str
    start_date: date
    end_date: date
    batch_id: Optional[int] = None

    @classmethod
    def from_module(cls, module: models.Module) -> "ModuleOut":
        course = CourseOut.from_course(module.course) if module.course else None
        return cls(
            id=module.id,
            learning_plan_id=module.learning_plan_id,
            course=course,
            trainer=module.trainer,
            start_date=module.start_date,
            end_date=module.end_date,
            batch_id=module.batch_id,
        )


class TrainerIn(BaseModel):
    trainer: Optional[str] = None


class DateRangeIn(BaseModel):
    """New start/end dates for a module."""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
