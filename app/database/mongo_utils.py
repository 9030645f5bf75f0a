from contextlib import contextmanager
import logging

from pymongo.errors import PyMongoError

from app.core.errors import StorageError

logger = logging.getLogger("classroom.database")


@contextmanager
def storage_errors(op: str):
    """Trasforma gli errori del driver in StorageError."""
    try:
        yield
    except PyMongoError as e:
        logger.error("Operazione Mongo fallita (%s): %s", op, e)
        raise StorageError(f"Storage failure during {op}") from e
