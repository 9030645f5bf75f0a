# app/main.py
from contextlib import asynccontextmanager
import logging
import sys
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorClient

from app.core.config import settings
from app.core.errors import Conflict, DomainError, Forbidden, NotFound, PreconditionFailed, StorageError
from app.database.mongo_assignment import MongoAssignmentRepository
from app.database.mongo_submission import MongoSubmissionRepository
from app.services.publisher_service import AssignmentPublisher
from app.routers.v1 import health
from app.routers.v1 import assignment
from app.routers.v1 import submission

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s :: %(message)s",
    stream=sys.stdout,
)

logger = logging.getLogger("classroom")

# DomainError -> status HTTP
ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    Forbidden: status.HTTP_403_FORBIDDEN,
    PreconditionFailed: status.HTTP_400_BAD_REQUEST,
    Conflict: status.HTTP_409_CONFLICT,
}


async def domain_error_handler(request: Request, exc: DomainError):
    code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.debug("%s %s rifiutata: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=code, content={"detail": exc.message})


async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("%s %s: storage non disponibile", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage temporarily unavailable"},
    )


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = AsyncIOMotorClient(settings.mongo_uri, uuidRepresentation="standard", tz_aware=True)
        publisher = AssignmentPublisher(
            rabbitmq_url=settings.rabbitmq_url,
            exchange=settings.rabbitmq_exchange,
            heartbeat=30,
        )
        try:
            db = client[settings.mongo_db_name]
            assignment_repo = MongoAssignmentRepository(db)
            submission_repo = MongoSubmissionRepository(db)
            await assignment_repo.ensure_indexes()
            await submission_repo.ensure_indexes()
            app.state.assignment_repo = assignment_repo   # repo disponibili alle routes
            app.state.submission_repo = submission_repo

            # --- RabbitMQ Publisher ---
            await publisher.connect(max_retries=10, delay=5)
            app.state.assignment_publisher = publisher

            yield
        finally:
            # chiude anche se l'avvio fallisce a metà
            await publisher.close()
            client.close()

    app = FastAPI(
        title="Classroom Assignment Service",
        description="Microservizio per assignment, consegne e revisioni",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins, allow_credentials=True,
        allow_methods=["*"], allow_headers=["*"],
    )

    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(StorageError, storage_error_handler)

    app.include_router(health.router,     prefix="/api/v1", tags=["health"])
    app.include_router(assignment.router, prefix="/api/v1", tags=["assignments"])
    app.include_router(submission.router, prefix="/api/v1", tags=["submissions"])
    return app

app = create_app()
