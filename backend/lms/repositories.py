"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (courses,
learning plans, modules). Lookups are explicit query methods taking
typed parameters. Repositories return SQLModel objects, return `None`
on a miss and perform commits/refreshes where appropriate.
"""

from typing import Iterable, List, Optional, Set
from sqlmodel import Session, select
from . import models


class CourseRepository:
    """CRUD operations for `Course` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, course: models.Course) -> models.Course:
        """Persist a new course and return the managed instance."""
        self.session.add(course)
        self.session.commit()
        self.session.refresh(course)
        return course

    def save(self, course: models.Course) -> models.Course:
        """Commit changes made to an already managed course."""
        return self.create(course)

    def get(self, course_id: int) -> Optional[models.Course]:
        """Get a `Course` by primary key."""
        return self.session.get(models.Course, course_id)

    def get_by_name(self, name: str) -> Optional[models.Course]:
        """Return a `Course` by exact name or `None` if not found."""
        stmt = select(models.Course).where(models.Course.name == name)
        return self.session.exec(stmt).first()

    def list_all(self) -> List[models.Course]:
        return self.session.exec(select(models.Course).order_by(models.Course.id)).all()

    def list_by_level(self, level: str) -> List[models.Course]:
        """Return all courses of the given level."""
        stmt = select(models.Course).where(models.Course.level == level).order_by(models.Course.id)
        return self.session.exec(stmt).all()

    def delete(self, course: models.Course) -> None:
        self.session.delete(course)
        self.session.commit()

    def delete_many(self, course_ids: Iterable[int]) -> int:
        """Delete every course whose id is in `course_ids` in one commit.

        Ids without a matching row are ignored. Returns the number of
        deleted rows.
        """
        ids = set(course_ids)
        if not ids:
            return 0
        rows = self.session.exec(select(models.Course).where(models.Course.id.in_(sorted(ids)))).all()
        for row in rows:
            self.session.delete(row)
        self.session.commit()
        return len(rows)


class LearningPlanRepository:
    """CRUD operations for `LearningPlan` and its batch rows."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, plan: models.LearningPlan) -> models.LearningPlan:
        """Persist a plan (new or modified) together with its batches."""
        self.session.add(plan)
        self.session.commit()
        self.session.refresh(plan)
        return plan

    def save(self, plan: models.LearningPlan) -> models.LearningPlan:
        return self.create(plan)

    def get(self, plan_id: int) -> Optional[models.LearningPlan]:
        """Fetch a learning plan by id."""
        return self.session.get(models.LearningPlan, plan_id)

    def list_all(self) -> List[models.LearningPlan]:
        return self.session.exec(select(models.LearningPlan).order_by(models.LearningPlan.id)).all()

    def list_by_type(self, plan_type: str) -> List[models.LearningPlan]:
        """Return all plans of the given type."""
        stmt = select(models.LearningPlan).where(models.LearningPlan.type == plan_type).order_by(models.LearningPlan.id)
        return self.session.exec(stmt).all()

    def find_by_name_and_type(self, name: str, plan_type: str) -> Optional[models.LearningPlan]:
        """Return the plan with this exact name and type, if any."""
        stmt = select(models.LearningPlan).where(
            models.LearningPlan.name == name,
            models.LearningPlan.type == plan_type
        ).order_by(models.LearningPlan.id)
        return self.session.exec(stmt).first()

    def list_owning_batches(self, batch_ids: Set[int]) -> List[models.LearningPlan]:
        """Return the plans that own at least one of `batch_ids`, lowest id first."""
        if not batch_ids:
            return []
        stmt = (
            select(models.LearningPlan)
            .join(models.LearningPlanBatch)
            .where(models.LearningPlanBatch.batch_id.in_(sorted(batch_ids)))
            .order_by(models.LearningPlan.id)
        )
        # one row per matching batch; keep each plan once
        plans = {}
        for plan in self.session.exec(stmt).all():
            plans.setdefault(plan.id, plan)
        return list(plans.values())

    def find_by_batch_ids(self, batch_ids: Set[int]) -> Optional[models.LearningPlan]:
        """Return the first plan owning any of `batch_ids` or `None`."""
        plans = self.list_owning_batches(batch_ids)
        return plans[0] if plans else None

    def delete(self, plan: models.LearningPlan) -> None:
        """Delete a plan; its batch rows go with it through the ORM cascade."""
        self.session.delete(plan)
        self.session.commit()


class ModuleRepository:
    """CRUD operations for `Module` records."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, module: models.Module) -> models.Module:
        """Persist a new module and return the managed instance."""
        self.session.add(module)
        self.session.commit()
        self.session.refresh(module)
        return module

    def save(self, module: models.Module) -> models.Module:
        return self.create(module)

    def get(self, module_id: int) -> Optional[models.Module]:
        """Fetch a module by id."""
        return self.session.get(models.Module, module_id)

    def list_all(self) -> List[models.Module]:
        return self.session.exec(select(models.Module).order_by(models.Module.id)).all()

    def list_by_learning_plan(self, learning_plan_id: int) -> List[models.Module]:
        """Return all modules attached to `learning_plan_id`."""
        stmt = select(models.Module).where(models.Module.learning_plan_id == learning_plan_id).order_by(models.Module.id)
        return self.session.exec(stmt).all()

    def list_by_trainer(self, trainer: str) -> List[models.Module]:
        """Return all modules taught by `trainer` (exact match)."""
        stmt = select(models.Module).where(models.Module.trainer == trainer).order_by(models.Module.id)
        return self.session.exec(stmt).all()

    def find_by_learning_plan_and_course(self, learning_plan_id: int, course_id: int) -> Optional[models.Module]:
        """Return the module for this learning plan/course pair, if any."""
        stmt = select(models.Module).where(
            models.Module.learning_plan_id == learning_plan_id,
            models.Module.course_id == course_id
        )
        return self.session.exec(stmt).first()

    def course_ids_in_use(self, course_ids: Iterable[int]) -> Set[int]:
        """Return the subset of `course_ids` referenced by at least one module."""
        ids = set(course_ids)
        if not ids:
            return set()
        stmt = select(models.Module.course_id).where(models.Module.course_id.in_(sorted(ids)))
        return set(self.session.exec(stmt).all())

    def delete(self, module: models.Module) -> None:
        self.session.delete(module)
        self.session.commit()

    def delete_many(self, module_ids: Iterable[int]) -> int:
        """Delete every module whose id is in `module_ids` in one commit.

        Ids without a matching row are ignored. Returns the number of
        deleted rows.
        """
        ids = set(module_ids)
        if not ids:
            return 0
        rows = self.session.exec(select(models.Module).where(models.Module.id.in_(sorted(ids)))).all()
        for row in rows:
            self.session.delete(row)
        self.session.commit()
        return len(rows)
