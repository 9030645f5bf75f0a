"""Errori di dominio sollevati dai service.

Le quattro classi di DomainError sono rifiuti definitivi: il router le
restituisce così come sono. StorageError invece segnala un guasto
dell'infrastruttura e viene mappato a parte (503).
"""


class DomainError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(DomainError):
    pass


class Forbidden(DomainError):
    pass


class PreconditionFailed(DomainError):
    @property
    def reason(self) -> str:
        return self.message


class Conflict(DomainError):
    pass


class StorageError(Exception):
    pass
