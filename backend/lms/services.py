"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories.
Services are intentionally thin and stateless apart from the session
they are built with: they validate input, enforce the uniqueness rules
and persist aggregates via repositories. Every rule is checked before
the store is mutated; failures are raised as `exceptions.LmsError`
subclasses.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session
from . import models, repositories, schemas
from .exceptions import (
    DuplicateEntryError,
    DuplicatePlanError,
    InvalidInputError,
    LmsError,
    NotFoundError,
    PartialBatchError,
)

logger = logging.getLogger("lms.services")

PLAN_NOT_FOUND_MSG = "Learning plan not found."
MODULE_NOT_FOUND_MSG = "Module not found for ID: "


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class CourseService:
    """Course CRUD, level filtering and DTO projection."""
    def __init__(self, session: Session):
        self.session = session
        self.course_repo = repositories.CourseRepository(session)
        self.module_repo = repositories.ModuleRepository(session)

    def save(self, name: Optional[str], level: Optional[str]) -> models.Course:
        """Create a course.

        Raises `InvalidInputError` for an empty name or unknown level and
        `DuplicateEntryError` when the name is already taken.
        """
        if _blank(name):
            raise InvalidInputError("Course name cannot be null or empty")
        self._check_level(level)
        name = name.strip()
        if self.course_repo.get_by_name(name):
            logger.warning("course rejected, duplicate name=%r", name)
            raise DuplicateEntryError(f"Course with name '{name}' already exists")
        try:
            course = self.course_repo.create(models.Course(name=name, level=level))
        except IntegrityError:
            self.session.rollback()
            raise DuplicateEntryError(f"Course with name '{name}' already exists")
        logger.info("course created id=%s name=%r level=%s", course.id, course.name, course.level)
        return course

    def get_all(self) -> List[models.Course]:
        return self.course_repo.list_all()

    def get_by_id(self, course_id: int) -> models.Course:
        course = self.course_repo.get(course_id)
        if course is None:
            raise NotFoundError(f"Course not found for ID: {course_id}")
        return course

    def get_by_level(self, level: Optional[str]) -> List[models.Course]:
        """Return all courses of `level`; an empty result is not an error."""
        self._check_level(level)
        return self.course_repo.list_by_level(level)

    def get_all_dtos(self) -> List[schemas.CourseDTO]:
        return [schemas.CourseDTO.from_course(c) for c in self.course_repo.list_all()]

    def update_name(self, course_id: int, new_name: Optional[str]) -> models.Course:
        if _blank(new_name):
            raise InvalidInputError("Course name cannot be null or empty")
        course = self.get_by_id(course_id)
        new_name = new_name.strip()
        other = self.course_repo.get_by_name(new_name)
        if other is not None and other.id != course.id:
            raise DuplicateEntryError(f"Course with name '{new_name}' already exists")
        course.name = new_name
        try:
            course = self.course_repo.save(course)
        except IntegrityError:
            self.session.rollback()
            raise DuplicateEntryError(f"Course with name '{new_name}' already exists")
        logger.info("course renamed id=%s name=%r", course.id, course.name)
        return course

    def delete(self, course_id: int) -> None:
        """Delete a course that no module references."""
        course = self.get_by_id(course_id)
        if self.module_repo.course_ids_in_use([course_id]):
            raise InvalidInputError(f"Course {course_id} is still used by modules")
        self.course_repo.delete(course)
        logger.info("course deleted id=%s", course_id)

    def delete_many(self, course_ids: Iterable[int]) -> int:
        """Delete a set of courses at once.

        Absent ids are ignored; the call is refused as a whole if any
        course is still referenced by a module.
        """
        ids = set(course_ids or ())
        in_use = self.module_repo.course_ids_in_use(ids)
        if in_use:
            raise InvalidInputError(f"Courses still used by modules: {sorted(in_use)}")
        deleted = self.course_repo.delete_many(ids)
        logger.info("courses deleted requested=%d deleted=%d", len(ids), deleted)
        return deleted

    @staticmethod
    def _check_level(level: Optional[str]) -> None:
        if _blank(level):
            raise InvalidInputError("Course level cannot be null or empty")
        if level not in models.COURSE_LEVELS:
            raise InvalidInputError(f"Course level must be one of {', '.join(models.COURSE_LEVELS)}")


class LearningPlanService:
    """Learning plan CRUD with one-plan-per-batch and name/type merging."""
    def __init__(self, session: Session):
        self.session = session
        self.plan_repo = repositories.LearningPlanRepository(session)
        self.module_repo = repositories.ModuleRepository(session)

    def save(self, name: Optional[str], plan_type: Optional[str], batch_ids: Optional[Iterable[int]] = None) -> models.LearningPlan:
        """Create a learning plan or merge it into an existing one.

        A batch already owned by a different plan raises
        `DuplicatePlanError`. When a plan with the same name and type
        exists, the incoming batch ids are unioned into it (or it is
        returned untouched when the batch sets are equal); no second row
        is created. Otherwise a new plan is inserted.
        """
        if _blank(name):
            raise InvalidInputError("Learning plan name cannot be null or empty")
        if _blank(plan_type):
            raise InvalidInputError("Learning plan type cannot be null or empty")
        incoming = set(batch_ids or ())
        existing = self.plan_repo.find_by_name_and_type(name, plan_type)
        owners = [
            p for p in self.plan_repo.list_owning_batches(incoming)
            if existing is None or p.id != existing.id
        ]
        if owners:
            logger.warning("learning plan rejected, batches %s owned by plan(s) %s",
                           sorted(incoming), [p.id for p in owners])
            raise DuplicatePlanError("Learning plan for this batch already exists")
        if existing is not None:
            if existing.batch_ids == incoming:
                return existing
            existing.add_batch_ids(incoming)
            plan = self._persist(existing)
            logger.info("learning plan merged id=%s batches=%s", plan.id, sorted(plan.batch_ids))
            return plan
        plan = models.LearningPlan(name=name, type=plan_type)
        plan.add_batch_ids(incoming)
        plan = self._persist(plan)
        logger.info("learning plan created id=%s name=%r type=%s", plan.id, plan.name, plan.type)
        return plan

    def get_all(self) -> List[models.LearningPlan]:
        return self.plan_repo.list_all()

    def get_by_id(self, plan_id: int) -> models.LearningPlan:
        plan = self.plan_repo.get(plan_id)
        if plan is None:
            raise NotFoundError(PLAN_NOT_FOUND_MSG)
        return plan

    def get_by_type(self, plan_type: Optional[str]) -> List[models.LearningPlan]:
        if _blank(plan_type):
            raise InvalidInputError("Learning plan type cannot be null or empty")
        plans = self.plan_repo.list_by_type(plan_type)
        if not plans:
            raise NotFoundError(PLAN_NOT_FOUND_MSG)
        return plans

    def get_by_batch_ids(self, batch_ids: Optional[Iterable[int]]) -> models.LearningPlan:
        """Return the plan owning any of `batch_ids` (lowest plan id first)."""
        if batch_ids is None:
            raise InvalidInputError("Batch ID cannot be null")
        plan = self.plan_repo.find_by_batch_ids(set(batch_ids))
        if plan is None:
            raise NotFoundError(PLAN_NOT_FOUND_MSG)
        return plan

    def update_name(self, plan_id: int, new_name: Optional[str]) -> models.LearningPlan:
        if _blank(new_name):
            raise InvalidInputError("Learning plan name cannot be null or empty")
        plan = self.get_by_id(plan_id)
        plan.name = new_name
        plan = self.plan_repo.save(plan)
        logger.info("learning plan renamed id=%s name=%r", plan.id, plan.name)
        return plan

    def delete(self, plan_id: int) -> None:
        """Delete a plan and its batch ownership.

        A plan that still has modules is refused; callers remove them
        first with `ModuleService.delete_by_learning_plan_id`.
        """
        plan = self.get_by_id(plan_id)
        if self.module_repo.list_by_learning_plan(plan_id):
            logger.warning("learning plan delete rejected, id=%s still has modules", plan_id)
            raise InvalidInputError(f"Learning plan {plan_id} still has modules")
        try:
            self.plan_repo.delete(plan)
        except IntegrityError:
            # a module was attached after the check; the foreign key refuses the delete
            self.session.rollback()
            raise InvalidInputError(f"Learning plan {plan_id} still has modules")
        logger.info("learning plan deleted id=%s", plan_id)

    def _persist(self, plan: models.LearningPlan) -> models.LearningPlan:
        # a concurrent save may have claimed one of the batches since the check
        try:
            return self.plan_repo.save(plan)
        except IntegrityError:
            self.session.rollback()
            raise DuplicatePlanError("Learning plan for this batch already exists")


class ModuleService:
    """Module CRUD with completeness validation and duplicate detection.

    Two modules are duplicates when they share the learning plan and
    the course; the dates are not part of the key. The module table
    carries a unique constraint on the same pair.
    """
    def __init__(self, session: Session):
        self.session = session
        self.module_repo = repositories.ModuleRepository(session)
        self.plan_repo = repositories.LearningPlanRepository(session)
        self.course_repo = repositories.CourseRepository(session)

    def save(self, module: models.Module) -> models.Module:
        """Validate and persist a new module.

        Raises `InvalidInputError` for incomplete data or an end date
        before the start date, `NotFoundError` when the learning plan or
        course does not exist and `DuplicateEntryError` when the plan
        already has a module for the course.
        """
        if (module.start_date is None or module.end_date is None
                or _blank(module.trainer)
                or module.course_id is None
                or module.learning_plan_id is None):
            raise InvalidInputError("Invalid or incomplete data provided for creating module")
        self._check_dates(module.start_date, module.end_date)
        if self.plan_repo.get(module.learning_plan_id) is None:
            raise NotFoundError(PLAN_NOT_FOUND_MSG)
        if self.course_repo.get(module.course_id) is None:
            raise NotFoundError(f"Course not found for ID: {module.course_id}")
        if self.module_repo.find_by_learning_plan_and_course(module.learning_plan_id, module.course_id):
            logger.warning("module rejected, duplicate learning_plan_id=%s course_id=%s",
                           module.learning_plan_id, module.course_id)
            raise DuplicateEntryError("A module with the same course and learning plan ID already exists.")
        try:
            module = self.module_repo.create(module)
        except IntegrityError:
            self.session.rollback()
            raise DuplicateEntryError("A module with the same course and learning plan ID already exists.")
        logger.info("module created id=%s learning_plan_id=%s course_id=%s",
                    module.id, module.learning_plan_id, module.course_id)
        return module

    def save_all(self, modules: Iterable[models.Module]) -> List[models.Module]:
        """Save `modules` one by one in input order.

        Saves are not rolled back when a later element fails: the
        `PartialBatchError` raised names the ids already committed and
        the index of the failing element.
        """
        saved = []
        for index, module in enumerate(modules):
            try:
                saved.append(self.save(module))
            except LmsError as exc:
                raise PartialBatchError(exc, [m.id for m in saved], index) from exc
        return saved

    def get_all(self) -> List[models.Module]:
        return self.module_repo.list_all()

    def get_by_id(self, module_id: int) -> models.Module:
        module = self.module_repo.get(module_id)
        if module is None:
            raise NotFoundError(f"{MODULE_NOT_FOUND_MSG}{module_id}")
        return module

    def get_by_learning_plan_id(self, learning_plan_id: int) -> List[models.Module]:
        return self.module_repo.list_by_learning_plan(learning_plan_id)

    def get_by_trainer(self, trainer: Optional[str]) -> List[models.Module]:
        if _blank(trainer):
            raise InvalidInputError("trainer cannot be null or empty.")
        return self.module_repo.list_by_trainer(trainer)

    def update_trainer(self, module_id: int, new_trainer: Optional[str]) -> models.Module:
        if _blank(new_trainer):
            raise InvalidInputError("Invalid or incomplete trainer value provided")
        module = self.get_by_id(module_id)
        module.trainer = new_trainer
        module = self.module_repo.save(module)
        logger.info("module trainer updated id=%s trainer=%r", module.id, module.trainer)
        return module

    def update_dates(self, module_id: int, start_date: Optional[date], end_date: Optional[date]) -> models.Module:
        """Replace both dates of a module and return it."""
        if start_date is None or end_date is None:
            raise InvalidInputError("Invalid or incomplete date provided for updating module")
        self._check_dates(start_date, end_date)
        module = self.get_by_id(module_id)
        module.start_date = start_date
        module.end_date = end_date
        module = self.module_repo.save(module)
        logger.info("module dates updated id=%s start=%s end=%s", module.id, start_date, end_date)
        return module

    def delete_by_learning_plan_id(self, learning_plan_id: int) -> List[int]:
        """Delete every module of a plan, one at a time.

        Returns the deleted ids. A module that vanished in the meantime
        stops the loop with a `PartialBatchError`.
        """
        module_ids = [m.id for m in self.module_repo.list_by_learning_plan(learning_plan_id)]
        deleted = []
        for index, module_id in enumerate(module_ids):
            try:
                self.delete(module_id)
            except NotFoundError as exc:
                raise PartialBatchError(exc, deleted, index) from exc
            deleted.append(module_id)
        return deleted

    def delete_many(self, module_ids: Iterable[int]) -> int:
        """Delete the given modules in one store operation; absent ids are ignored."""
        deleted = self.module_repo.delete_many(module_ids or ())
        logger.info("modules deleted count=%d", deleted)
        return deleted

    def delete(self, module_id: int) -> None:
        module = self.get_by_id(module_id)
        self.module_repo.delete(module)
        logger.info("module deleted id=%s", module_id)

    @staticmethod
    def _check_dates(start_date: date, end_date: date) -> None:
        if end_date < start_date:
            raise InvalidInputError("End date must be after start date")
