class DomainError(Exception):
    pass

class ValidationError(DomainError, ValueError):
    pass

class NotFoundError(DomainError, LookupError):
    pass

