"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the learning-management
backend. Controllers are intentionally thin: they accept requests,
delegate to services, and return JSON responses. Service errors are
translated to `{status, message}` bodies by the exception handlers
registered below.

Endpoints implemented:
- /course: create, list, dto list, by id, by level, rename, delete, bulk delete
- /learning-plan: create/merge, list, by id, by type, by batch, rename, delete
- /module: create one/many, list, by learning plan, by trainer,
  update trainer, update dates, delete one/many/by learning plan
- GET /health
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlmodel import Session
from typing import List
import json
import logging
import time
import uuid
from .database import create_db_and_tables, get_session
from . import services
from .config import settings
from .exceptions import InvalidInputError, LmsError
from .schemas import (
    CourseDTO,
    CourseIn,
    CourseOut,
    DateRangeIn,
    IdsIn,
    LearningPlanIn,
    LearningPlanOut,
    ModuleIn,
    ModuleOut,
    NameIn,
    TrainerIn,
)

logger = logging.getLogger("lms.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    create_db_and_tables()
    yield


app = FastAPI(title="Learning Management API", lifespan=lifespan)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
            },
            ensure_ascii=True,
        ),
    )
    return response


@app.exception_handler(LmsError)
async def lms_error_handler(request: Request, exc: LmsError):
    logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = ".".join(str(part) for part in first.get("loc", ()))
    message = f"{loc}: {first.get('msg', 'invalid request')}" if loc else first.get("msg", "invalid request")
    logger.warning("Validation error on %s: %s", request.url.path, errors)
    return JSONResponse(status_code=400, content={"status": 400, "message": message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception on %s", request.url.path)
    return JSONResponse(status_code=500, content={"status": 500, "message": "An unexpected error occurred."})


@app.get('/health')
def health():
    return {'status': 'ok'}


# --- courses ---

@app.post('/course', response_model=CourseOut)
def add_course(payload: CourseIn, db: Session = Depends(get_session)):
    course = services.CourseService(db).save(payload.name, payload.level)
    return CourseOut.from_course(course)


@app.get('/course', response_model=List[CourseOut])
def list_courses(db: Session = Depends(get_session)):
    return [CourseOut.from_course(c) for c in services.CourseService(db).get_all()]


@app.get('/course/dto', response_model=List[CourseDTO])
def list_course_dtos(db: Session = Depends(get_session)):
    return services.CourseService(db).get_all_dtos()


@app.get('/course/id/{course_id}', response_model=CourseOut)
def get_course(course_id: int, db: Session = Depends(get_session)):
    return CourseOut.from_course(services.CourseService(db).get_by_id(course_id))


@app.get('/course/level/{level}', response_model=List[CourseOut])
def courses_by_level(level: str, db: Session = Depends(get_session)):
    return [CourseOut.from_course(c) for c in services.CourseService(db).get_by_level(level)]


@app.patch('/course/name/{course_id}', response_model=CourseOut)
def rename_course(course_id: int, payload: NameIn, db: Session = Depends(get_session)):
    return CourseOut.from_course(services.CourseService(db).update_name(course_id, payload.name))


@app.delete('/course/multiple')
def delete_courses(payload: IdsIn, db: Session = Depends(get_session)):
    deleted = services.CourseService(db).delete_many(payload.ids)
    return {'message': 'Courses deleted successfully', 'deleted': deleted}


@app.delete('/course/{course_id}')
def delete_course(course_id: int, db: Session = Depends(get_session)):
    services.CourseService(db).delete(course_id)
    return {'message': 'Course deleted successfully'}


# --- learning plans ---

@app.post('/learning-plan', response_model=LearningPlanOut)
def save_learning_plan(payload: LearningPlanIn, db: Session = Depends(get_session)):
    plan = services.LearningPlanService(db).save(payload.name, payload.type, payload.batch_ids)
    return LearningPlanOut.from_plan(plan)


@app.get('/learning-plan', response_model=List[LearningPlanOut])
def list_learning_plans(db: Session = Depends(get_session)):
    return [LearningPlanOut.from_plan(p) for p in services.LearningPlanService(db).get_all()]


@app.get('/learning-plan/type/{plan_type}', response_model=List[LearningPlanOut])
def learning_plans_by_type(plan_type: str, db: Session = Depends(get_session)):
    return [LearningPlanOut.from_plan(p) for p in services.LearningPlanService(db).get_by_type(plan_type)]


@app.get('/learning-plan/batch/{batch_ids}', response_model=LearningPlanOut)
def learning_plan_by_batch(batch_ids: str, db: Session = Depends(get_session)):
    """Return the plan owning any of the comma-separated batch ids."""
    try:
        ids = {int(part) for part in batch_ids.split(',') if part.strip()}
    except ValueError:
        raise InvalidInputError(f"Invalid batch id list: {batch_ids!r}")
    return LearningPlanOut.from_plan(services.LearningPlanService(db).get_by_batch_ids(ids))


@app.get('/learning-plan/{plan_id}', response_model=LearningPlanOut)
def get_learning_plan(plan_id: int, db: Session = Depends(get_session)):
    return LearningPlanOut.from_plan(services.LearningPlanService(db).get_by_id(plan_id))


@app.put('/learning-plan/{plan_id}/update-name', response_model=LearningPlanOut)
def rename_learning_plan(plan_id: int, payload: NameIn, db: Session = Depends(get_session)):
    return LearningPlanOut.from_plan(services.LearningPlanService(db).update_name(plan_id, payload.name))


@app.delete('/learning-plan/{plan_id}')
def delete_learning_plan(plan_id: int, db: Session = Depends(get_session)):
    services.LearningPlanService(db).delete(plan_id)
    return {'message': 'LearningPlan deleted successfully'}


# --- modules ---

@app.post('/module', response_model=ModuleOut)
def create_module(payload: ModuleIn, db: Session = Depends(get_session)):
    return ModuleOut.from_module(services.ModuleService(db).save(payload.to_model()))


@app.post('/module/multiple', response_model=List[ModuleOut])
def create_modules(payload: List[ModuleIn], db: Session = Depends(get_session)):
    saved = services.ModuleService(db).save_all([m.to_model() for m in payload])
    return [ModuleOut.from_module(m) for m in saved]


@app.get('/module', response_model=List[ModuleOut])
def list_modules(db: Session = Depends(get_session)):
    return [ModuleOut.from_module(m) for m in services.ModuleService(db).get_all()]


@app.get('/module/learning-plan-id/{learning_plan_id}', response_model=List[ModuleOut])
def modules_by_learning_plan(learning_plan_id: int, db: Session = Depends(get_session)):
    modules = services.ModuleService(db).get_by_learning_plan_id(learning_plan_id)
    return [ModuleOut.from_module(m) for m in modules]


@app.get('/module/trainer/{trainer_name}', response_model=List[ModuleOut])
def modules_by_trainer(trainer_name: str, db: Session = Depends(get_session)):
    return [ModuleOut.from_module(m) for m in services.ModuleService(db).get_by_trainer(trainer_name)]


@app.patch('/module/trainer/{module_id}')
def update_trainer(module_id: int, payload: TrainerIn, db: Session = Depends(get_session)):
    services.ModuleService(db).update_trainer(module_id, payload.trainer)
    return {'message': 'Trainer updated successfully'}


@app.patch('/module/update-dates/{module_id}', response_model=ModuleOut)
def update_dates(module_id: int, payload: DateRangeIn, db: Session = Depends(get_session)):
    module = services.ModuleService(db).update_dates(module_id, payload.start_date, payload.end_date)
    return ModuleOut.from_module(module)


@app.delete('/module/learning-plan-id/{learning_plan_id}')
def delete_modules_by_learning_plan(learning_plan_id: int, db: Session = Depends(get_session)):
    deleted = services.ModuleService(db).delete_by_learning_plan_id(learning_plan_id)
    return {'message': 'Modules deleted successfully', 'deleted': deleted}


@app.delete('/module/multiple')
def delete_modules(payload: IdsIn, db: Session = Depends(get_session)):
    deleted = services.ModuleService(db).delete_many(payload.ids)
    return {'message': 'Modules deleted successfully', 'deleted': deleted}


@app.delete('/module/{module_id}')
def delete_module(module_id: int, db: Session = Depends(get_session)):
    services.ModuleService(db).delete(module_id)
    return {'message': 'Module deleted successfully'}
