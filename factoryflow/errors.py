# errors.py
# Taxonomia de erros da aplicação

class FactoryFlowError(Exception):
    """Erro base. `status` é o código HTTP usado pela API."""
    status = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class NotFound(FactoryFlowError):
    status = 404


class DuplicateKey(FactoryFlowError):
    status = 409


class Forbidden(FactoryFlowError):
    status = 403


class ValidationError(FactoryFlowError):
    status = 400


class BackendUnavailable(FactoryFlowError):
    status = 503


_BY_STATUS = {cls.status: cls for cls in (NotFound, DuplicateKey, Forbidden, ValidationError, BackendUnavailable)}


def error_for_status(status: int, message: str) -> FactoryFlowError:
    """Reconstrói o erro a partir do status HTTP devolvido pelo servidor remoto"""
    cls = _BY_STATUS.get(status, FactoryFlowError)
    return cls(message)
