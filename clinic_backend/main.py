import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from clinic_backend.core import config, errors
from clinic_backend.database import Base, engine, ensure_scheduling_schema
from clinic_backend.models import appointment, availability, blackout, insurance_plan, patient, provider  # noqa: F401
from clinic_backend.routes import admin_routes, appointment_routes, availability_routes, provider_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
)
logger = logging.getLogger(__name__)

config.validate_runtime_config()

app = FastAPI(title='Clinic Scheduling API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_scheduling_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


async def scheduling_error_handler(request: Request, exc: errors.SchedulingError) -> JSONResponse:
    if isinstance(exc, errors.InternalError):
        logger.error(
            'Internal error on %s %s: %s',
            request.method, request.url.path, exc.message,
            exc_info=exc.__cause__ or exc,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception('Unhandled database error on %s %s', request.method, request.url.path, exc_info=exc)
    internal = errors.InternalError(str(exc))
    return JSONResponse(status_code=internal.status_code, content=internal.to_payload())


app.add_exception_handler(errors.SchedulingError, scheduling_error_handler)
app.add_exception_handler(SQLAlchemyError, store_error_handler)


@app.get('/')
def root():
    return {'status': 'Clinic Scheduling API Running'}


app.include_router(availability_routes.router, prefix='/availability')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(provider_routes.router, prefix='/provider')
app.include_router(admin_routes.router, prefix='/admin')
